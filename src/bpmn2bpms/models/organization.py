"""Organization model read from ArchiMate."""
from pydantic import BaseModel, Field


class Actor(BaseModel):
    id: str
    name: str = ""


class Role(BaseModel):
    id: str
    name: str = ""
    actors: list[Actor] = Field(default_factory=list)


class Organization(BaseModel):
    roles: list[Role] = Field(default_factory=list)

    def all_actors(self) -> list[Actor]:
        return [actor for role in self.roles for actor in role.actors]
