from pydantic import BaseModel, Field


class EmailJSConfig(BaseModel):
    publicKey: str
    serviceId: str
    templateId: str


class ContactMessage(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    message: str = Field(min_length=1)
