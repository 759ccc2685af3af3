from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudpipe.db.models.secret import Secret
from cloudpipe.exceptions import DatabaseError, ValidationError


@dataclass(frozen=True)
class CreateSecretRequest:
    name: str
    type: str = 'generic'
    values: Dict[str, str] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()

    def with_tag(self, tag: str) -> 'CreateSecretRequest':
        if tag in self.tags:
            return self
        return replace(self, tags=self.tags + (tag,))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CreateSecretRequest':
        if not isinstance(data, dict) or not data.get('name'):
            raise ValidationError("Secret name is required", "MISSING_SECRET_NAME")
        values = data.get('values') or {}
        if not isinstance(values, dict):
            raise ValidationError("Secret values must be an object", "INVALID_SECRET_VALUES")
        return cls(
            name=data['name'],
            type=data.get('type') or 'generic',
            values={str(k): str(v) for k, v in values.items()},
            tags=tuple(data.get('tags') or ()),
        )


class SecretStore:
    def __init__(self, session: Session):
        self.session = session

    def store(self, organisation_id: int, request: CreateSecretRequest) -> Secret:
        """
        Persist a new secret for an organisation.
        Names are unique within an organisation.
        """
        if not request.name:
            raise ValidationError("Secret name is required", "MISSING_SECRET_NAME")

        try:
            existing = self.session.scalars(
                select(Secret).filter_by(organisation_id=organisation_id, name=request.name)
            ).first()

            if existing:
                raise ValidationError(
                    f"A secret named {request.name} already exists in your organization",
                    "SECRET_EXISTS"
                )

            secret = Secret(
                organisation_id=organisation_id,
                name=request.name,
                type=request.type,
                values=dict(request.values),
                tags=list(request.tags),
                created_at=datetime.now(timezone.utc),
                updated_at=datetime.now(timezone.utc)
            )

            self.session.add(secret)
            self.session.commit()
            return secret

        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError("Failed to create secret", secret=request.name) from e
