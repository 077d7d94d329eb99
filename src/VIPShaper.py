#!/usr/bin/python3
import argparse
import logging
import sys
import warnings
from datetime import datetime

from commandRunner import ShaperStepError, SudoShellRunner
from packetMarking import setupPacketMarking
from shaperCommon import ConfigError, loadShaperConfig, validateShaperConfig
from trafficControl import setupTrafficControl


def checkPhase(outcomes):
    if outcomes and not outcomes[-1].ok:
        raise ShaperStepError(outcomes[-1])
    return outcomes


def applyShaping(config, runner):
    """
    Apply the queueing setup, then the packet marking setup.

    Marking relies on the fw filter created by the queueing phase, so the
    order is fixed. Raises ShaperStepError on the first failed command;
    nothing after it is issued and nothing before it is undone.
    """
    outcomes = checkPhase(setupTrafficControl(config, runner))
    outcomes += checkPhase(setupPacketMarking(config, runner))
    currentTimeString = datetime.now().strftime("%d/%m/%Y %H:%M:%S")
    logging.info(f"Successful run of {len(outcomes)} commands completed on {currentTimeString}")
    return outcomes


def applyOverrides(config, args):
    if args.interface:
        config.interface = args.interface
    if args.default_rate:
        config.defaultRate = args.default_rate
    if args.vip_ip is not None:
        config.vipIPs = list(args.vip_ip)
    if args.vip_rate:
        config.vipRate = args.vip_rate
    if args.dry_run:
        config.enableActualShellCommands = False
    return config


def buildParser():
    parser = argparse.ArgumentParser(description="Shape an interface with a default rate and a higher VIP rate")
    parser.add_argument(
        '-d', '--debug',
        help="Print lots of debugging statements",
        action="store_const", dest="loglevel", const=logging.DEBUG,
        default=logging.WARNING,
    )
    parser.add_argument(
        '-v', '--verbose',
        help="Be verbose",
        action="store_const", dest="loglevel", const=logging.INFO,
    )
    parser.add_argument(
        '--config',
        help="Path to shaperConfig.py (defaults to $VIPSHAPER_CONFIG or shaperConfig.py beside this program)",
    )
    parser.add_argument(
        '--validate',
        help="Just validate the configuration",
        action=argparse.BooleanOptionalAction,
    )
    parser.add_argument('--interface', help="Interface to shape")
    parser.add_argument('--default-rate', help="Rate and ceil of the default class, e.g. 120kbps")
    parser.add_argument('--vip-rate', help="Rate and ceil of the VIP class, e.g. 256kbps")
    parser.add_argument(
        '--vip-ip',
        help="VIP IPv4 address. Repeat for several; replaces the configured list",
        action='append',
    )
    parser.add_argument(
        '--dry-run',
        help="Only log the commands that would be run",
        action='store_true',
    )
    return parser


def main(argv=None, runner=None):
    args = buildParser().parse_args(argv)
    logging.basicConfig(level=args.loglevel)

    try:
        config = loadShaperConfig(args.config, required=args.config is not None)
    except ConfigError as e:
        print("ERROR: " + str(e), file=sys.stderr)
        return 1
    applyOverrides(config, args)

    if args.validate:
        if validateShaperConfig(config, checkInterface=True):
            print("Configuration passed validation")
            return 0
        print("Configuration failed validation")
        return 1

    if not validateShaperConfig(config):
        print("ERROR: Configuration failed validation. Aborting", file=sys.stderr)
        return 1

    # Warn user if enableActualShellCommands is False, because that would mean no actual commands are executing
    if not config.enableActualShellCommands:
        warnings.warn("enableActualShellCommands is set to False. None of the commands below will actually be executed. Simulated run.", stacklevel=2)
    if runner is None:
        runner = SudoShellRunner(config.enableActualShellCommands, config.runShellCommandsAsSudo)
    try:
        applyShaping(config, runner)
    except ShaperStepError as e:
        print("ERROR: " + str(e), file=sys.stderr)
        return 1

    print("All DONE")
    return 0


if __name__ == '__main__':
    sys.exit(main())
