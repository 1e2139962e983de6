##
# Copyright (c) 2005-2017 Apple Inc. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
##

__all__ = [
    "Config",
    "ConfigDict",
    "ConfigProvider",
    "PListConfigProvider",
    "ConfigurationError",
    "DEFAULT_CONFIG",
    "config",
]

import copy
import os
import plistlib

from twisted.logger import Logger

log = Logger()


DEFAULT_CONFIG = {
    # Principals with unconditional free busy access (principal URLs or UIDs)
    "AdminPrincipals": [],

    # Maximum number of calendar objects matched by a single free busy query
    "MaxQueryWithDataResults": 1000,

    # Maximum number of instances a single recurring component may expand to
    "MaxAllowedInstances": 3000,

    "Scheduling": {
        "Options": {
            "LimitFreeBusyAttendees": 30,  # Maximum number of attendees to request freebusy for (0 - no limit)
            "FreeBusy": {
                "MaxConcurrentAttendees": 8,  # Attendee lookups allowed to run at the same time
                "AttendeeTimeoutSeconds": 30,  # Time allowed for a single attendee
                "RequestTimeoutSeconds": 120,  # Time allowed for the whole request
                "DefaultAccess": "allow",  # Access for non-administrators: "allow" or "deny"
            },
        },
    },
}



class ConfigurationError(RuntimeError):
    """
    Invalid server configuration.
    """



class ConfigDict(dict):
    """
    Dictionary which can be accessed using attribute syntax, because
    that reads and writes nicer in code.  For example:
      C{config.Scheduling.Options.LimitFreeBusyAttendees}
    instead of:
      C{config["Scheduling"]["Options"]["LimitFreeBusyAttendees"]}
    """
    def __init__(self, mapping=None):
        if mapping is not None:
            for key, value in mapping.items():
                self[key] = value


    def __repr__(self):
        return "*" + dict.__repr__(self)


    def __setitem__(self, key, value):
        if key.startswith("_"):
            # Names beginning with "_" are reserved for real attributes
            raise KeyError("Keys may not begin with '_': %s" % (key,))

        if isinstance(value, dict) and not isinstance(value, self.__class__):
            dict.__setitem__(self, key, self.__class__(value))
        else:
            dict.__setitem__(self, key, value)


    def __setattr__(self, attr, value):
        if attr.startswith("_"):
            dict.__setattr__(self, attr, value)
        else:
            self[attr] = value


    def __getattr__(self, attr):
        if not attr.startswith("_") and attr in self:
            return self[attr]
        else:
            return dict.__getattribute__(self, attr)


    def __delattr__(self, attr):
        if not attr.startswith("_") and attr in self:
            del self[attr]
        else:
            dict.__delattr__(self, attr)



class ConfigProvider(object):
    """
    Configuration provider, abstraction for config storage/format/defaults.
    """

    def __init__(self, defaults=None):
        """
        Create configuration provider with given defaults.
        """
        self._configFileName = None
        if defaults is None:
            self._defaults = ConfigDict()
        else:
            self._defaults = ConfigDict(copy.deepcopy(defaults))


    def getDefaults(self):
        return self._defaults


    def setConfigFileName(self, configFileName):
        """
        Change configuration file path and name for next load operations.
        """
        self._configFileName = configFileName
        if self._configFileName:
            self._configFileName = os.path.abspath(configFileName)


    def loadConfig(self):
        """
        Load the configuration, return a dictionary of settings.

        @raise ConfigurationError: if the configuration cannot be read.
        """
        raise NotImplementedError("ConfigProvider.loadConfig")



class PListConfigProvider(ConfigProvider):
    """
    Configuration provider reading an XML property list file.
    """

    def loadConfig(self):
        configDict = {}
        if self._configFileName:
            configDict = self._parseConfigFromFile(self._configFileName)
        return ConfigDict(configDict)


    def _parseConfigFromFile(self, filename):
        try:
            with open(filename, "rb") as f:
                configDict = plistlib.load(f)
        except (IOError, OSError):
            log.error("Configuration file does not exist or is inaccessible: {f}", f=filename)
            raise ConfigurationError("Configuration file does not exist or is inaccessible: %s" % (filename,))
        except plistlib.InvalidFileException:
            log.error("Configuration file is not a valid property list: {f}", f=filename)
            raise ConfigurationError("Configuration file is not a valid property list: %s" % (filename,))
        return configDict



class Config(object):

    def __init__(self, provider=None):
        if not provider:
            self._provider = PListConfigProvider(DEFAULT_CONFIG)
        else:
            self._provider = provider
        self.reset()


    def __setattr__(self, attr, value):
        if "_data" in self.__dict__ and attr in self.__dict__["_data"]:
            self._data[attr] = value
        else:
            self.__dict__[attr] = value

    _data = ()

    def __getattr__(self, attr):
        if attr in self._data:
            return self._data[attr]
        raise AttributeError(attr)


    def __str__(self):
        return str(self._data)


    def update(self, items=None):
        if not isinstance(items, ConfigDict):
            items = ConfigDict(items)
        mergeData(self._data, items)


    def load(self, configFile):
        """
        Merge the settings of C{configFile} over the current ones.

        @raise ConfigurationError: if the file cannot be read.
        """
        self._provider.setConfigFileName(configFile)
        self.update(self._provider.loadConfig())


    def reset(self):
        self._data = ConfigDict(copy.deepcopy(self._provider.getDefaults()))



def mergeData(oldData, newData):
    """
    Merge two ConfigDict objects; oldData will be updated with all the keys
    and values from newData
    @param oldData: the object to modify
    @type oldData: ConfigDict
    @param newData: the object to copy data from
    @type newData: ConfigDict
    """
    for key, value in newData.items():
        if isinstance(value, (dict,)):
            if key in oldData:
                assert isinstance(oldData[key], ConfigDict), \
                    "%r in %r is not a ConfigDict" % (oldData[key], oldData)
            else:
                oldData[key] = {}
            mergeData(oldData[key], value)
        else:
            oldData[key] = value


config = Config()
