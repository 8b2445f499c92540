#!/usr/bin/env python3
"""Verify a configuration file without touching SMTP or the database."""

import argparse
import sys
from pathlib import Path

import yaml

from jobalerts.config.loader import validate_config_file

KNOWN_SECTIONS = {"schedule": dict, "notifications": dict, "email": dict, "logging": dict}


def check_sections(config_file: Path) -> list:
    """Report unknown or mistyped top-level sections."""
    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        return ["Top level of the file must be a mapping"]

    problems = []
    for key, value in config.items():
        expected = KNOWN_SECTIONS.get(key)
        if expected is None:
            problems.append(f"Unknown section: {key}")
        elif not isinstance(value, expected):
            problems.append(f"'{key}' must be of type {expected.__name__}")
    return problems


def verify_config(config_file: Path) -> bool:
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        problems = check_sections(config_file)
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    if problems:
        print(f"✗ {config_file} structure is invalid:")
        for problem in problems:
            print(f"  - {problem}")
        return False

    return validate_config_file(config_file)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("config", nargs="?", type=Path, default=Path("config.example.yaml"))
    args = parser.parse_args()
    sys.exit(0 if verify_config(args.config) else 1)
