"""
Onboarding Service - Tenant registration API

Responsibilities:
- Validate tenant names and derive canonical names
- Record tenants in the registry with uniqueness guarantees
- Remove tenants idempotently

Stacks are never touched here; the provisioner reacts to the registry's
change stream.
"""
