"""
adkar_backup -- Backup lifecycle manager for the adkar bot's JSON datastore.

Submodules:
    version_manager  schema version detection and migration chain
    validator        field-level entity validation
    metadata         checksums, statistics and envelope metadata
    diagnostic       whole-document diagnosis
    repair           automatic structural repair
    backup_manager   snapshot create/list/restore
    cli              ``adkar-backup`` command
"""

__version__ = "3.0.0"
