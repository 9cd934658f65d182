"""Sink: every git repository on every machine of your network, in one view.

Each machine runs a node that scans its repositories, watches them for
changes, advertises itself on the local network and serves its repository
list. Nodes fetch each other's lists and merge them into one view.
"""

__version__ = "0.1.0"
