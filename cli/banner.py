"""ASCII art banner for the TaskRunner CLI."""

BANNER = r"""
 _____         _    ____
|_   _|_ _ ___| | _|  _ \ _   _ _ __  _ __   ___ _ __
  | |/ _` / __| |/ / |_) | | | | '_ \| '_ \ / _ \ '__|
  | | (_| \__ \   <|  _ <| |_| | | | | | | |  __/ |
  |_|\__,_|___/_|\_\_| \_\\__,_|_| |_|_| |_|\___|_|
"""

TAGLINE = "Run once and scheduled tasks from your task pools"


def print_banner() -> None:
    """Print the banner and tagline."""
    print(BANNER)
    print(f"  {TAGLINE}")
    print()
