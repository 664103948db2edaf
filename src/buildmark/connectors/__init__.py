"""Repository connectors.

Connectors fetch the raw facts the engine works from: tags, commit hashes,
pull requests in a range, the issues those pull requests close, and the
currently open issues. The engine only talks to RepoConnectorProtocol;
concrete implementations are chosen by configuration in factory.py.
"""
