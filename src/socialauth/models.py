"""Base Pydantic models for the socialauth SDK.

All SDK models inherit from `SdkBaseModel` so they share one configuration:

- Strict field validation (no extra fields allowed)
- Immutable instances, safe to share between concurrent calls

Example:
    >>> from socialauth.models import SdkBaseModel
    >>>
    >>> class Credentials(SdkBaseModel):
    ...     client_id: str
    >>>
    >>> Credentials(client_id="2021000000000000").model_dump()
    {'client_id': '2021000000000000'}
"""

from pydantic import BaseModel, ConfigDict


class SdkBaseModel(BaseModel):
    """Base model for all socialauth SDK Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable

    Models that parse provider payloads override `extra` to "ignore", since
    providers add fields without notice.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
