# Once the tc classes are set up, iptables marks the packets we want to
# shape so the fw filter can route them.

import logging

from commandRunner import Step, runSteps


def buildPacketMarkingSteps(config):
    interface = config.interface
    outboundChain = config.outboundChain
    inboundChain = config.inboundChain
    steps = []

    # Custom chains in the mangle table
    steps.append(Step('adding ' + outboundChain, 'iptables -t mangle -N ' + outboundChain))
    steps.append(Step('adding ' + inboundChain, 'iptables -t mangle -N ' + inboundChain))

    # The inbound chain hangs off POSTROUTING and the outbound chain off
    # PREROUTING. The names read inverted; this wiring is what deployed hosts run.
    steps.append(Step('adding POSTROUTING',
        'iptables -t mangle -I POSTROUTING -o ' + interface + ' -j ' + inboundChain))
    steps.append(Step('adding PREROUTING',
        'iptables -t mangle -I PREROUTING -i ' + interface + ' -j ' + outboundChain))

    # Anything from/to the shaped subnet gets defaultMark, VIP addresses get vipMark
    defaultMark = str(config.defaultMark)
    steps.append(Step('marking out ' + defaultMark,
        'iptables -t mangle -A ' + outboundChain + ' -s ' + config.shapedSubnet + ' -j MARK --set-mark ' + defaultMark))
    steps.append(Step('marking ' + defaultMark,
        'iptables -t mangle -A ' + inboundChain + ' -d ' + config.shapedSubnet + ' -j MARK --set-mark ' + defaultMark))

    vipMark = str(config.vipMark)
    for ip in config.vipIPs:
        steps.append(Step('marking out ' + vipMark + ' for ip = ' + ip,
            'iptables -t mangle -A ' + outboundChain + ' -s ' + ip + ' -j MARK --set-mark ' + vipMark))
        steps.append(Step('marking in ' + vipMark + ' for ip = ' + ip,
            'iptables -t mangle -A ' + inboundChain + ' -d ' + ip + ' -j MARK --set-mark ' + vipMark))
    return steps


def setupPacketMarking(config, runner):
    logging.info("# iptables Setup for " + config.interface)
    logging.debug(f"{len(config.vipIPs)} VIP addresses will be marked with {config.vipMark}")
    return runSteps(buildPacketMarkingSteps(config), runner)
