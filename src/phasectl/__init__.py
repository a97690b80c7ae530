"""phasectl — phased software-update deployment provisioning for Configuration Manager."""

__version__ = "0.3.0"
