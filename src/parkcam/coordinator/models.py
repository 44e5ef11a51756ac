"""Wire models for the coordinator's check and update endpoints."""

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class PollSignal(BaseModel):
    """Answer of GET /clientcheck/<location>."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    new_pic_requested: StrictBool = Field(alias="NewPicRequested")


class NotifyPayload(BaseModel):
    """Body of POST /clientupdate/<location>."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    latest_image_url: str = Field(alias="LatestImageURL")

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
