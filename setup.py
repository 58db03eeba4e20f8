#!/usr/bin/env python
"""Setup for pyiscp module."""
from setuptools import setup


def readme():
    """Return README file as a string."""
    with open("README.rst", "r") as f:
        return f.read()


setup(
    name="pyiscp",
    version="0.1.0",
    url="https://github.com/pyiscp/pyiscp",
    license="MIT",
    packages=["pyiscp"],
    scripts=[],
    description="Python API for controlling Onkyo and Integra receivers over ISCP/eISCP",
    long_description=readme(),
    python_requires=">=3.7",
    install_requires=["netifaces-plus", "pyserial"],
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    include_package_data=True,
    zip_safe=True,
    entry_points={"console_scripts": ["onkyo_monitor = pyiscp.tools:monitor",]},
)
