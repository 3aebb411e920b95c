import sys

from chat_client.main import main

sys.exit(main())
