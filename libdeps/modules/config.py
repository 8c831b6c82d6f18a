# libdeps/modules/config.py
import configparser
import os

DEFAULT_LOCATIONS = [
    "/etc/libdeps/libdeps.conf",
    os.path.expanduser("~/.config/libdeps/libdeps.conf"),
]


class LibDepsConfig:
    def __init__(self, locations=None):
        self.locations = locations or DEFAULT_LOCATIONS
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        self.reload()

    def reload(self):
        """(Re)load the configuration from the first file that exists.

        No file at all is not an error: every getter falls back to its default.
        """
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        for path in self.locations:
            if os.path.isfile(path):
                self.config.read(path)
                self.loaded_from = path
                return

    def load(self, path):
        """Load an explicit config file (``--conf``); it must exist."""
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Config file not found: {path}")
        self.locations = [path]
        self.reload()

    def get(self, section, option, fallback=None):
        try:
            return self.config.get(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def getboolean(self, section, option, fallback=False):
        try:
            return self.config.getboolean(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getint(self, section, option, fallback=0):
        try:
            return self.config.getint(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getfloat(self, section, option, fallback=0.0):
        try:
            return self.config.getfloat(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback


# Default instance shared by the other modules
config = LibDepsConfig()
