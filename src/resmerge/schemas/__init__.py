"""JSON schemas for resmerge configuration files.

- merge_config.schema.json: merge defaults and logging settings
"""
