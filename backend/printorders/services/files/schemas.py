"""Input schemas for upload operations."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ModelDataInput(BaseModel):
    """Volumetric analysis of a 3D model, computed by the uploader's slicer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    volume: float | None = None
    weight: float | None = None
    x: float | None = None
    y: float | None = None
    z: float | None = None
    print_time: float | None = None
