"""Runtime services: registry, governance, execution, sessions and audit.

Import from the individual modules; this package does not re-export
them so that tool implementations can depend on the context and event
modules without pulling in the executor.
"""
