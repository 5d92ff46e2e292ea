"""Pydantic models for gateway payloads."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bot_gateway.converters import UnixTimestamp


class GatewayModel(BaseModel):
    """Base for payload models: camelCase on the wire, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class FileContact(GatewayModel):
    """Group (or friend) that owns a remote file."""

    id: int
    name: str = ""
    permission: str | None = None


class FileDownloadInfo(GatewayModel):
    """Download details, present only when requested."""

    sha1: str | None = None
    md5: str | None = None
    download_times: int = 0
    uploader_id: int | None = None
    upload_time: UnixTimestamp = None
    last_modify_time: UnixTimestamp = None
    url: str | None = None


class GroupFileInfo(GatewayModel):
    """File or directory in a group's file area."""

    id: str
    name: str
    path: str = ""
    parent: "GroupFileInfo | None" = None
    contact: FileContact | None = None
    is_file: bool = False
    # Older gateway builds misspell this field.
    is_directory: bool = Field(
        default=False,
        validation_alias=AliasChoices("isDirectory", "isDictionary", "is_directory"),
    )
    size: int | None = None
    download_info: FileDownloadInfo | None = None


GroupFileInfo.model_rebuild()
