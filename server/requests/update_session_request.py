"""UpdateSessionRequest model."""

from pydantic import BaseModel


class UpdateSessionRequest(BaseModel):
    title: str | None = None
