"""Terminal color theme for the linechat client."""

from colorama import Fore, Style

SYSTEM_COLOR = Fore.YELLOW  # SERVER: notices
PEER_COLOR = Fore.CYAN  # other users' names
NOTICE_COLOR = Fore.GREEN  # local client status
ALERT_COLOR = Fore.RED  # disconnects and errors
PROMPT_COLOR = Style.BRIGHT
RESET = Style.RESET_ALL
