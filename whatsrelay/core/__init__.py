"""Relay core: events, session state, fan-out, commands and the send gateway."""
