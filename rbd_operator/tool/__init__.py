"""The rbd-operator command line tool."""
