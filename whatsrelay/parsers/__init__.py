from .command_parser import Command, parse_command

__all__ = ["Command", "parse_command"]
