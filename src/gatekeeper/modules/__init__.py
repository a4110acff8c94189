"""Domain modules built on top of the core authorization layer."""
