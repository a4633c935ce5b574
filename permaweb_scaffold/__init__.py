"""permaweb-scaffold: create permaweb apps from framework templates."""

__version__ = "0.1.0"
