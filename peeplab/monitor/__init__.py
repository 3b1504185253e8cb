"""peeplab dashboard — terminal-facing collaborators of the core.

Modules
-------
projection
    Pure read-only views of ``ApplicationState`` (log viewport, ages).
renderer
    ``DashboardRenderer`` turns state into Rich renderables.
keymap
    ``map_key`` translates key names into actions for the current mode.
terminal
    ``TerminalSession`` (scoped terminal setup) and ``KeyReader``.
"""
