"""Car wash booking board: weekly slots, monthly quota, admin-controlled window."""

__version__ = "2.5.0"
