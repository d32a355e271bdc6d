"""
pkgforge - build the same package recipe on local, remote, cloud or container hosts.
"""

__version__ = "1.0.0"
