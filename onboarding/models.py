import uuid
from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class TenantRecord:
    """A registered tenant. Records are created and deleted, never updated."""

    tenant_id: str
    tenant_name: str
    description: str

    @classmethod
    def new(cls, tenant_name: str, description: str) -> 'TenantRecord':
        return cls(
            tenant_id=str(uuid.uuid4()),
            tenant_name=tenant_name,
            description=description
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['TenantRecord']:
        if not data or not data.get('tenant_name'):
            return None
        return cls(
            tenant_id=data.get('tenant_id', ''),
            tenant_name=data['tenant_name'],
            description=data.get('description', '')
        )
