import platform
from typing import Type

from clipbuddy.clipboard.base import Pasteboard


def get_pasteboard_class() -> Type[Pasteboard]:
    system = platform.system()

    if system == "Windows":
        from clipbuddy.clipboard.windows import WindowsPasteboard
        return WindowsPasteboard
    elif system == "Linux":
        from clipbuddy.clipboard.linux import LinuxPasteboard
        return LinuxPasteboard
    elif system == "Darwin":
        from clipbuddy.clipboard.macos import MacOSPasteboard
        return MacOSPasteboard
    else:
        raise NotImplementedError(f"Platform '{system}' is not supported")


def get_pasteboard() -> Pasteboard:
    pasteboard_class = get_pasteboard_class()
    return pasteboard_class()
