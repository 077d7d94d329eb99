# tc is the program that is in charge of setting up the shaping rules.
# A nice guide: http://sirlagz.net/2013/01/27/how-to-turn-the-raspberry-pi-into-a-shaping-wifi-router/

import logging

from commandRunner import Step, runSteps


def buildTrafficControlSteps(config):
    interface = config.interface
    steps = []

    # Default policy for the interface: everyone is shaped to defaultRate,
    # unclassified traffic falls into the default class.
    steps.append(Step('adding QDISC',
        'tc qdisc add dev ' + interface + ' root handle ' + config.rootHandle + ' htb default ' + config.defaultClassMinor()))
    steps.append(Step('adding CLASS',
        'tc class add dev ' + interface + ' parent ' + config.rootHandle + ' classid ' + config.classID
        + ' htb rate ' + config.defaultRate + ' ceil ' + config.defaultRate + ' prio 0'))

    # A second class shapes VIP addresses to a higher speed. Packets marked
    # with vipMark are routed into it by the fw filter.
    steps.append(Step('adding CLASS VIP',
        'tc class add dev ' + interface + ' parent ' + config.vipRootHandle + ' classid ' + config.vipClassID
        + ' htb rate ' + config.vipRate + ' ceil ' + config.vipRate + ' prio 1'))
    steps.append(Step('adding FILTER VIP',
        'tc filter add dev ' + interface + ' parent ' + config.vipRootHandle + ' prio 1 handle ' + str(config.vipMark)
        + ' fw flowid ' + config.vipClassID))
    return steps


def setupTrafficControl(config, runner):
    logging.info("# TC Setup for " + config.interface)
    return runSteps(buildTrafficControlSteps(config), runner)
