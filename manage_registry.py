#!/usr/bin/env python3
"""
Registry management script for deployment.

Usage:
    python manage_registry.py init   # Create the provisioner consumer group
    python manage_registry.py list   # List registered tenants and their stacks
"""
import os
import sys

# Add current directory to path so we can import the services
sys.path.append(os.getcwd())

from onboarding.registry import TenantRegistryClient
from provisioner.stack_manager import StackManagerClient
from shared.config import get_config
from shared.errors import BackendUnavailable


def init(cfg):
    """Create the change feed consumer group if it is missing."""
    registry = TenantRegistryClient.from_config(cfg)
    created = registry.stream.ensure_group(cfg.FEED_CONSUMER_GROUP)
    if created:
        print(f"✓ Consumer group {cfg.FEED_CONSUMER_GROUP} created on {registry.stream.stream_key}")
    else:
        print(f"✓ Consumer group {cfg.FEED_CONSUMER_GROUP} already exists")


def list_tenants(cfg):
    """Print every registered tenant alongside its deployment state."""
    registry = TenantRegistryClient.from_config(cfg)
    stacks = StackManagerClient.from_config(cfg)

    records = registry.list_records()
    for record in records:
        try:
            state = stacks.get_stack_state(record.tenant_name) or 'absent'
        except BackendUnavailable as e:
            state = f'unknown ({e})'
        print(f"{record.tenant_name}\t{record.tenant_id}\t{state}")
    print(f"{len(records)} tenants registered")


COMMANDS = {
    'init': init,
    'list': list_tenants,
}


if __name__ == '__main__':
    command = sys.argv[1] if len(sys.argv) > 1 else 'init'
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print("Usage: python manage_registry.py [init|list]")
        sys.exit(1)

    try:
        COMMANDS[command](get_config())
    except BackendUnavailable as e:
        print(f"Error: {e}")
        sys.exit(1)
