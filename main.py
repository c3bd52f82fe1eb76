import sys

from tictactoe_link.cli import main

# -----------------------------------------------------------------------------
# ENTRY POINT
# -----------------------------------------------------------------------------

if __name__ == '__main__':
    # host:  python main.py host --port 7000
    # join:  python main.py join --host 192.168.1.5
    sys.exit(main())
