"""
Provisioner - Tenant stack lifecycle

Responsibilities:
- Read registry change events from the change stream
- Provision a stack for every registered tenant
- Decommission the stack of every removed tenant
- Tolerate redelivery by treating "already in target state" as success
"""
