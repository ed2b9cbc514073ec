from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NewUser(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PasswordUpdate(BaseModel):
    password: str = Field(min_length=1)


class FilePath(BaseModel):
    path: str = Field(min_length=1)


class FileWrite(BaseModel):
    path: str = Field(min_length=1)
    content: str


class FileCreate(BaseModel):
    path: str = Field(min_length=1)
    content: str = ""
    exclusive: bool = False


class RuleAdd(BaseModel):
    chain: str = Field(min_length=1)
    rule: str = Field(min_length=1)


class RuleRemove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain: str = Field(min_length=1)
    rule_number: int = Field(alias="ruleNumber", ge=1)
    # rule text from the listing; guards against positions that shifted
    expected: Optional[str] = None


class PortRuleAdd(BaseModel):
    port: int = Field(ge=1, le=65535)
    protocol: str = "tcp"
    action: str = "allow"


class ExecuteCommand(BaseModel):
    command: str = Field(min_length=1)
