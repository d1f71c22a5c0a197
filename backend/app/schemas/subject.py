from pydantic import BaseModel, Field


class SubjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    class_id: str = Field(min_length=1, max_length=36)
    color: str | None = Field(default=None, max_length=20)


class SubjectCreate(SubjectBase):
    pass


class SubjectOut(SubjectBase):
    id: str

    model_config = {"from_attributes": True}
