# Copy this file to shaperConfig.py and adjust. Any value left out keeps its default.

# Interface to shape
interface = 'wlan0'

# HTB handles. The minor number of classID is used as the qdisc's default class,
# so unclassified traffic is shaped to defaultRate.
rootHandle = '1:0'
vipRootHandle = '1:1'
classID = '1:10'
vipClassID = '1:5'

# Rate and ceil of each class, in any unit tc accepts (kbps is kilobytes per second)
defaultRate = '120kbps'
vipRate = '256kbps'

# Addresses shaped to vipRate instead of defaultRate
vipIPs = ['192.168.1.111']

# Optional CSV with more VIP addresses (columns: Device Name, IPv4, Comment).
# Leave as '' to use vipIPs only.
vipDevicesFile = ''

# Traffic from/to this subnet is marked with defaultMark.
# VIP addresses are marked with vipMark, which is also the fw filter handle.
shapedSubnet = '192.168.1.0/24'
defaultMark = 1
vipMark = 5

# Names of the custom chains created in the mangle table
outboundChain = 'shaper-out'
inboundChain = 'shaper-in'

# Allow shell commands. False causes commands to only be logged without being executed.
# MUST BE ENABLED FOR PROGRAM TO FUNCTION
enableActualShellCommands = True

# Run every command as 'sudo sh -c ...'. Set False when already running as root.
runShellCommandsAsSudo = True
