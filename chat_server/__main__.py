import sys

from chat_server.server import main

sys.exit(main())
