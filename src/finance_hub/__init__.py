"""Personal finance hub: session store, route guard, resource services and functions."""

__version__ = "0.1.0"
