"""Base schema classes with camelCase aliases.

Python code stays snake_case; JSON on the wire is camelCase
(`proposalId`, `uploadedByUid`, `canDelete`, ...).
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request bodies. Accepts camelCase or snake_case keys."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class CamelORMModel(BaseModel):
    """Base for responses built from ORM rows. Serialized with camelCase keys."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }
