"""Key-level synchronization of localization resources with a cloud project."""

__version__ = "0.4.0"
