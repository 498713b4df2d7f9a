"""Check Host Backend Application.

Runs network diagnostics (ping, DNS, HTTP, TCP, UDP, IP info) from a fleet of
remote worker agents and aggregates their results.

Modules:
    - core: Configuration, database, logging, metrics, middleware
    - modules.agent: Worker agent registry
    - modules.check: Check fan-out, worker client and result normalization
"""

__version__ = "0.1.0"
