"""
UI Module

Rich terminal interface for the bug tracker assistant.

Author: AI System
Version: 2.0
"""

from ui.terminal_ui import TerminalUI

__all__ = [
    'TerminalUI',
]

__version__ = '2.0.0'
