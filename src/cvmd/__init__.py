"""cvmd - control plane for confidential virtual machines."""

__version__ = "0.3.0"
