"""Built-in CLI sub-commands for popauth.

Each module defines a Typer command or sub-app registered on the root
application in :func:`popauth.app.main`:

- :mod:`~popauth.commands.open` -- run a popup authorization flow.
- :mod:`~popauth.commands.config` -- view and modify settings.
"""
