"""Copy prepared command lines to the system clipboard"""

import platform
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

import pyperclip


class ClipboardBackend(ABC):
    @abstractmethod
    def copy(self, text: str) -> bool:
        """Copy text to clipboard. Return True on success or False otherwise."""
        ...


class PyperclipBackend(ClipboardBackend):
    def copy(self, text: str) -> bool:
        try:
            pyperclip.copy(text)
            return True
        except pyperclip.PyperclipException:
            return False


class _PipeBackend(ClipboardBackend):
    """Pipe text into a platform clipboard tool"""

    system = ""
    commands: List[List[str]] = []

    def copy(self, text: str) -> bool:
        if platform.system() != self.system:
            return False
        for cmd in self.commands:
            try:
                p = subprocess.Popen(cmd, stdin=subprocess.PIPE)
                p.communicate(text.encode("utf-8"))
            except OSError:
                continue
            if p.returncode == 0:
                return True
        return False


class MacOSBackend(_PipeBackend):
    system = "Darwin"
    commands = [["pbcopy"]]


class WindowsBackend(_PipeBackend):
    system = "Windows"
    commands = [["clip"]]


class LinuxBackend(_PipeBackend):
    system = "Linux"
    # xclip first, then xsel
    commands = [
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


class ClipboardManager:
    def __init__(self, backends: Optional[List[ClipboardBackend]] = None):
        self.backends = backends if backends is not None else [
            PyperclipBackend(),
            MacOSBackend(),
            WindowsBackend(),
            LinuxBackend(),
        ]

    def copy(self, text: str) -> bool:
        for backend in self.backends:
            if backend.copy(text):
                return True
        return False
