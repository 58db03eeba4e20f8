class ValueRange(object):
    """Some command values are defined as a range of possible
    values, such as from 1 to 100. We use a custom type to represent
    this. Both ends are inclusive.
    """

    def __init__(self, start, end):
        self.start = start
        self.end = end

        self._range = tuple(range(start, end + 1))

    def __contains__(self, value):
        return value in self._range

    def __repr__(self):
        return "ValueRange({}, {})".format(self.start, self.end)


def hexdump(data):
    """Render ``data`` as hex followed by its printable characters."""
    printable = "".join(chr(b) if 0x20 <= b <= 0x7E else "." for b in data)
    return "{} {}".format(bytes(data).hex(), printable)
