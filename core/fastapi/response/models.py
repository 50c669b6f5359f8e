from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CustomBaseModel(BaseModel):
    """
    Base schema for request and response bodies.

    Fields are declared in snake_case and exchanged as camelCase on the wire;
    either spelling is accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CustomBaseModel):
    success: bool = True
