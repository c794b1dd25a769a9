"""Run the rbd-operator command line tool with `python -m rbd_operator`."""

from rbd_operator.tool.rbd_operator import main

if __name__ == "__main__":
    main()
