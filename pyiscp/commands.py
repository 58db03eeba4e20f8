"""Human readable command phrases and the ISCP commands they map to."""
import re
from types import MappingProxyType

from pyiscp.exceptions import UnknownCommand
from pyiscp.utils import ValueRange

__all__ = ("CommandTable", "DEFAULT_COMMANDS", "COMMAND_MAPPINGS", "canonicalize")

COMMAND_MAPPINGS = {
    "power on": "PWR01",
    "power off": "PWR00",
    "power standby": "PWR00",
    "power?": "PWRQSTN",
    "mute": "AMT00",
    "unmute": "AMT01",
    "toggle mute": "AMTTG",
    "mute?": "AMTQSTN",
    "speaker a on": "SPA01",
    "speaker a off": "SPA00",
    "toggle speaker a": "SPAUP",
    "speaker a?": "SPAQSTN",
    "speaker b on": "SPB01",
    "speaker b off": "SPB00",
    "toggle speaker b": "SPBUP",
    "speaker b?": "SPBQSTN",
    "volume+": "MVLUP",
    "volume-": "MVLDOWN",
    "volume?": "MVLQSTN",
    "sleep off": "SLPOFF",
    "sleep?": "SLPQSTN",
    "display0": "DIF00",
    "display1": "DIF01",
    "display2": "DIF02",
    "display3": "DIF03",
    "display toggle": "DIFTG",
    "display?": "DIFQSTN",
    "dimmer bright": "DIM00",
    "dimmer dim": "DIM01",
    "dimmer dark": "DIM02",
    "dimmer off": "DIM03",
    "dimmer ledoff": "DIM08",
    "dimmer toggle": "DIMTG",
    "dimmer?": "DIMQSTN",
    "menu key": "OSDMENU",
    "up key": "OSDUP",
    "down key": "OSDDOWN",
    "right key": "OSDRIGHT",
    "left key": "OSDLEFT",
    "enter key": "OSDENTER",
    "exit key": "OSDEXIT",
    "audio key": "OSDAUDIO",
    "video key": "OSDVIDEO",
    "home key": "OSDHOME",
}

# Tone controls share one layout per channel group.
TONE_GROUPS = {
    "front": "TFR",
    "front wide": "TFW",
    "front high": "TFH",
    "center": "TCT",
    "surround": "TSR",
    "surround back": "TSB",
    "subwoofer": "TSW",
}

for _name, _prefix in TONE_GROUPS.items():
    COMMAND_MAPPINGS.update({
        "{} bass+".format(_name): _prefix + "BUP",
        "{} bass-".format(_name): _prefix + "BDOWN",
        "{} treble+".format(_name): _prefix + "TUP",
        "{} treble-".format(_name): _prefix + "TDOWN",
        "{} tone?".format(_name): _prefix + "QSTN",
    })

VOLUME = ValueRange(0, 100)
SLEEP_MINUTES = ValueRange(1, 90)


def canonicalize(command):
    """Ensures that various ways to refer to a command can be used.

    ``Master Volume Up``, ``volume up`` and ``volume+`` all end up as
    ``vol+``.
    """
    command = command.lower()
    command = re.sub(r"question|query|qstn", "?", command)
    command = re.sub(r"^master ", "", command)
    command = command.replace("volume", "vol")
    command = command.replace("centre", "center")
    command = command.replace("up", "+")
    command = command.replace("down", "-")
    command = re.sub(r"\s+", "", command)
    return command


class CommandTable(object):
    """Read-only mapping from command phrases to ISCP commands.

    Keys are stored canonicalized, so lookups are insensitive to case,
    whitespace and the synonyms handled by :func:`canonicalize`.
    """

    def __init__(self, mapping):
        self._mapping = MappingProxyType(
            {canonicalize(phrase): iscp for phrase, iscp in mapping.items()}
        )

    def __len__(self):
        return len(self._mapping)

    def __contains__(self, phrase):
        return canonicalize(phrase) in self._mapping

    @property
    def mapping(self):
        return self._mapping

    def lookup(self, command):
        """Resolve ``command`` to a raw ISCP command such as ``MVL28``.

        Raises :class:`UnknownCommand` if ``command`` has no mapping and
        does not already look like a raw command.
        """
        canon = canonicalize(command)
        if canon in self._mapping:
            return self._mapping[canon]

        match = re.match(r"^vol(\d+)%?$", canon)
        if match and int(match.group(1)) in VOLUME:
            # We need to send the format "FF", hex() gives us 0xff
            return "MVL" + hex(int(match.group(1)))[2:].zfill(2).upper()

        match = re.match(r"^sleep(\d+)m\w+$", canon)
        if match and int(match.group(1)) in SLEEP_MINUTES:
            return "SLP" + hex(int(match.group(1)))[2:].zfill(2).upper()

        if re.match(r"^[A-Z]{3}", command):
            return command

        raise UnknownCommand(
            '"{}" is not a known command and does not match /^[A-Z]{{3}}/'.format(command)
        )


DEFAULT_COMMANDS = CommandTable(COMMAND_MAPPINGS)
