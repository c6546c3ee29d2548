"""dumbcli - bookmark shell commands and run them again later"""

__version__ = "2.0.0"
