"""Feature modules for :mod:`routesplit`."""
