"""Herder - keeps a fleet of remote worker instances busy and drives jobs to their goals.

Key modules:

- :mod:`herder.fleet` - Reconciliation loop, job monitor, shared fleet state, worker client
- :mod:`herder.config` - YAML configuration schema and loader
- :mod:`herder.server` - HTTP control API
- :mod:`herder.cli` - Command line interface
"""

__version__ = "0.1.0"
