"""hostprep — idempotent host provisioning and GitHub repository installer."""

__version__ = "0.1.0"
