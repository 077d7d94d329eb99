# Configuration shared by the queueing and marking phases:
# loading shaperConfig.py, the optional VIP devices CSV, and validation.

import csv
import importlib.util
import io
import ipaddress
import logging
import os
import re
import warnings
from dataclasses import dataclass, field, fields
from typing import List

import chardet
import psutil

DEFAULT_CONFIG_FILENAME = 'shaperConfig.py'
CONFIG_ENV_VAR = 'VIPSHAPER_CONFIG'
SYSTEM_CONFIG_DIR = '/etc/vipshaper'

# tc accepts these suffixes for rates. bps is bytes per second, bit is bits.
RATE_PATTERN = re.compile(r'^\d+(\.\d+)?(bit|kbit|mbit|gbit|tbit|bps|kbps|mbps|gbps|tbps)$')
HANDLE_PATTERN = re.compile(r'^[0-9a-fA-F]+:[0-9a-fA-F]*$')
# Kernel interface names stop at 15 characters, iptables chain names at 28
INTERFACE_PATTERN = re.compile(r'^[A-Za-z0-9_.:-]{1,15}$')
CHAIN_PATTERN = re.compile(r'^[A-Za-z0-9_.:-]{1,28}$')


class ConfigError(Exception):
    pass


@dataclass
class ShaperConfig:
    interface: str = 'wlan0'
    rootHandle: str = '1:0'
    vipRootHandle: str = '1:1'
    classID: str = '1:10'
    vipClassID: str = '1:5'
    defaultRate: str = '120kbps'
    vipRate: str = '256kbps'
    vipIPs: List[str] = field(default_factory=lambda: ['192.168.1.111'])
    vipDevicesFile: str = ''
    shapedSubnet: str = '192.168.1.0/24'
    defaultMark: int = 1
    vipMark: int = 5
    outboundChain: str = 'shaper-out'
    inboundChain: str = 'shaper-in'
    enableActualShellCommands: bool = True
    runShellCommandsAsSudo: bool = True

    def defaultClassMinor(self):
        # "htb default N" takes the minor number of the default class
        return self.classID.split(':', 1)[1]


def configSearchPaths():
    # First match wins: working directory, system config, then beside the modules
    return [os.path.join(directory, DEFAULT_CONFIG_FILENAME)
            for directory in (os.getcwd(), SYSTEM_CONFIG_DIR, os.path.dirname(os.path.abspath(__file__)))]


def defaultConfigPath():
    if os.environ.get(CONFIG_ENV_VAR):
        return os.environ[CONFIG_ENV_VAR]
    searchPaths = configSearchPaths()
    for path in searchPaths:
        if os.path.isfile(path):
            return path
    return searchPaths[0]


def getShaperConfigValue(module, value, defaultValue):
    # Returns the attribute from the config module if it exists, otherwise the default
    try:
        return getattr(module, value)
    except AttributeError:
        return defaultValue


def loadConfigModule(path):
    moduleSpec = importlib.util.spec_from_file_location('shaperConfig', path)
    if moduleSpec is None or moduleSpec.loader is None:
        raise ConfigError("Unable to load configuration from " + path)
    module = importlib.util.module_from_spec(moduleSpec)
    try:
        moduleSpec.loader.exec_module(module)
    except (OSError, SyntaxError) as e:
        raise ConfigError("Unable to load configuration from " + path + ": " + str(e)) from e
    return module


def loadShaperConfig(path=None, required=False):
    """
    Build a ShaperConfig from a shaperConfig.py style module.

    Attributes missing from the module keep their defaults. When no file
    exists at the default location the built-in defaults are used; a file
    that was asked for explicitly (required=True) must exist.
    """
    if path is None:
        path = defaultConfigPath()
    config = ShaperConfig()
    if not os.path.isfile(path):
        if required:
            raise ConfigError("Configuration file " + path + " does not exist")
        logging.warning(f"No configuration found at {path}; using built-in defaults.")
    else:
        logging.info(f"Loading configuration from {path}")
        module = loadConfigModule(path)
        for f in fields(ShaperConfig):
            setattr(config, f.name, getShaperConfigValue(module, f.name, getattr(config, f.name)))
        config.vipIPs = list(config.vipIPs)
    if config.vipDevicesFile:
        config.vipIPs.extend(loadVipDevices(config.vipDevicesFile))
    return config


def readCsvText(path):
    try:
        with open(path, 'rb') as f:
            raw_bytes = f.read()
    except OSError as e:
        raise ConfigError("Unable to read " + path + ": " + str(e)) from e

    if raw_bytes.startswith(b'\xef\xbb\xbf'):  # UTF-8 BOM
        return raw_bytes[3:].decode('utf-8')
    elif raw_bytes.startswith(b'\xff\xfe') or raw_bytes.startswith(b'\xfe\xff'):  # UTF-16 BOM
        return raw_bytes.decode('utf-16')
    try:
        return raw_bytes.decode('utf-8')
    except UnicodeDecodeError:
        detected = chardet.detect(raw_bytes)
        encoding = detected['encoding'] or 'utf-8'
        return raw_bytes.decode(encoding, errors='replace')


def loadVipDevices(vipDevicesFile):
    # Columns: Device Name, IPv4, Comment. IPv4 may list several addresses.
    vipIPs = []
    with io.StringIO(readCsvText(vipDevicesFile)) as csv_file:
        csv_reader = csv.reader(csv_file, delimiter=',')
        rows = [row for row in csv_reader if row and not row[0].startswith('#')]
    if rows:
        rows.pop(0)
    for row in rows:
        if len(row) < 2:
            continue
        ipv4_input = row[1].replace(' ', '')
        if ipv4_input == '':
            continue
        vipIPs.extend(ipv4_input.split(','))
    logging.info(f"Loaded {len(vipIPs)} VIP addresses from {vipDevicesFile}")
    return vipIPs


def isValidIPv4(inputIP):
    try:
        return type(ipaddress.ip_address(inputIP)) is ipaddress.IPv4Address
    except ValueError:
        return False


def interfaceExists(interface):
    return interface in psutil.net_if_stats()


def validateShaperConfig(config, checkInterface=False):
    """
    Check every configured value, warning once per problem.

    Returns True when the configuration can be applied. With
    checkInterface, the interface must also exist on this host.
    """
    validatedOrNot = True
    if not config.interface:
        warnings.warn("No interface provided", stacklevel=2)
        validatedOrNot = False
    elif not INTERFACE_PATTERN.match(str(config.interface)):
        warnings.warn("Provided interface '" + str(config.interface) + "' is not a valid interface name", stacklevel=2)
        validatedOrNot = False
    elif checkInterface and not interfaceExists(config.interface):
        warnings.warn("Interface '" + config.interface + "' does not exist on this host", stacklevel=2)
        validatedOrNot = False
    for name in ('outboundChain', 'inboundChain'):
        value = str(getattr(config, name))
        if not CHAIN_PATTERN.match(value):
            warnings.warn("Provided " + name + " '" + value + "' is not a valid iptables chain name", stacklevel=2)
            validatedOrNot = False
    for name in ('rootHandle', 'vipRootHandle', 'classID', 'vipClassID'):
        value = str(getattr(config, name))
        if not HANDLE_PATTERN.match(value):
            warnings.warn("Provided " + name + " '" + value + "' is not a valid tc handle", stacklevel=2)
            validatedOrNot = False
    if HANDLE_PATTERN.match(str(config.classID)) and config.defaultClassMinor() == '':
        warnings.warn("Provided classID '" + config.classID + "' has no minor number", stacklevel=2)
        validatedOrNot = False
    for name in ('defaultRate', 'vipRate'):
        value = str(getattr(config, name))
        if not RATE_PATTERN.match(value):
            warnings.warn("Provided " + name + " '" + value + "' is not a valid tc rate", stacklevel=2)
            validatedOrNot = False
    for name in ('defaultMark', 'vipMark'):
        value = getattr(config, name)
        if type(value) is not int or value < 1:
            warnings.warn("Provided " + name + " '" + str(value) + "' is not a positive integer", stacklevel=2)
            validatedOrNot = False
    try:
        ipaddress.ip_network(config.shapedSubnet)
    except ValueError:
        warnings.warn("Provided shapedSubnet '" + str(config.shapedSubnet) + "' is not a valid network", stacklevel=2)
        validatedOrNot = False
    seenTheseIPsAlready = []
    for ipEntry in config.vipIPs:
        if ipEntry in seenTheseIPsAlready:
            warnings.warn("Provided VIP IPv4 '" + ipEntry + "' is duplicate.", stacklevel=2)
            validatedOrNot = False
        elif not isValidIPv4(ipEntry):
            warnings.warn("Provided VIP IPv4 '" + ipEntry + "' is not valid.", stacklevel=2)
            validatedOrNot = False
        seenTheseIPsAlready.append(ipEntry)
    return validatedOrNot
