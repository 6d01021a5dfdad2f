"""Wire-format base for the files API.

Clients send and receive camelCase (userId, isPublic, parentId); Python code
uses the snake_case field names.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
