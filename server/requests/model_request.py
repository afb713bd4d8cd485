"""ModelRequest model."""

from pydantic import BaseModel


class ModelRequest(BaseModel):
    """Selects the model for summarize and init."""

    providerID: str
    modelID: str
