"""Utilities shared across the package (logging, configuration, factories).

- `logger`: package logger
- `conditional`: optional imports (`torch`, `tritonclient`)
- `config`: YAML configuration loading with includes and overrides
- `factory`: instantiation of classes from configuration blocks
"""
