"""
Storage Package.

This package manages all data persistence for the alias directory.

Modules:
- database: Engine, sessions and the retried transactional writer
- models/: Declarative base
- repositories/: Repository base class and exceptions
"""
