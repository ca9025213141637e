"""
Overlay entity records.

Every entity carries a stable integer ``id`` (0 is the sentinel "no entity"
row). Regional entities and burgs are soft-deleted through ``removed``;
their slot in the collection is kept so ids never shift.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Entity(BaseModel):
    """Base for all indexed overlay entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int = Field(description="Stable entity index, 0 is the sentinel")
    name: str = Field(default="", description="Display name")


class RegionalEntity(Entity):
    """An entity that owns a set of cells through a per-cell id field."""

    color: str = Field(default="#000000", description="Color in hex format")
    center: int = Field(default=0, description="Cell ID of the entity center")
    removed: bool = Field(default=False, description="Whether the entity has been removed")
    lock: bool = Field(default=False, description="Whether the entity is locked for editing")


class Culture(RegionalEntity):
    """Data structure for a cultural group."""

    type: str = Field(default="Generic", description="Culture type")
    expansionism: float = Field(default=1.0, description="Expansion tendency")
    base: int = Field(default=0, description="Index into name bases")
    origins: List[int] = Field(default_factory=list, description="Parent culture IDs")


class Religion(RegionalEntity):
    """Data structure for a religion."""

    type: str = Field(default="Folk", description="Religion type: Folk, Organized, Cult, Heresy")
    form: str = Field(default="", description="Specific religious form")
    culture: int = Field(default=0, description="Associated culture ID")
    deity: Optional[str] = Field(default=None, description="Supreme deity name")
    expansion: str = Field(default="global", description="Expansion type: global, state, culture")
    origins: List[int] = Field(default_factory=list, description="Parent religion IDs")


class Regiment(BaseModel):
    """A military unit stationed by a state."""

    id: int = Field(description="Regiment index within its state")
    name: str = Field(default="", description="Regiment name")
    state: int = Field(default=0, description="Owning state ID")
    cell: int = Field(default=0, description="Cell of the current position")
    x: float = Field(default=0.0, description="Current X coordinate")
    y: float = Field(default=0.0, description="Current Y coordinate")
    base_cell: int = Field(default=0, description="Cell of the home base")
    bx: float = Field(default=0.0, description="Home base X coordinate")
    by: float = Field(default=0.0, description="Home base Y coordinate")
    total: int = Field(default=0, description="Total number of soldiers")
    n: int = Field(default=0, description="0 = land regiment, 1 = naval")


class State(RegionalEntity):
    """Data structure for a political state."""

    full_name: str = Field(default="", description="Full state name")
    form: str = Field(default="", description="Government form")
    capital: int = Field(default=0, description="Burg ID of the capital")
    culture: int = Field(default=0, description="Dominant culture ID")
    type: str = Field(default="Generic", description="Cultural type affecting expansion")
    expansionism: float = Field(default=1.0, description="Expansion tendency")
    neighbors: List[int] = Field(default_factory=list, description="Neighbouring state IDs")
    military: List[Regiment] = Field(default_factory=list, description="State regiments")
    pole: Optional[Tuple[float, float]] = Field(default=None, description="Pole of inaccessibility")


class Province(RegionalEntity):
    """Data structure for a province."""

    full_name: str = Field(default="", description="Full province name")
    form: str = Field(default="", description="Province form")
    state: int = Field(default=0, description="Owning state ID")
    burg: int = Field(default=0, description="Burg ID of the provincial capital")
    pole: Optional[Tuple[float, float]] = Field(default=None, description="Pole of inaccessibility")


class Burg(Entity):
    """Data structure for a settlement (burg)."""

    cell: int = Field(default=0, description="Cell ID where the burg is located")
    x: float = Field(default=0.0, description="X coordinate")
    y: float = Field(default=0.0, description="Y coordinate")
    population: float = Field(default=0.0, description="Burg population")
    state: int = Field(default=0, description="State ID this burg belongs to")
    culture: int = Field(default=0, description="Culture ID of this burg")
    feature: int = Field(default=0, description="Feature ID the burg stands on")
    capital: bool = Field(default=False, description="Whether this is a capital city")
    port: int = Field(default=0, description="Feature ID if port, 0 otherwise")
    type: str = Field(default="Generic", description="Burg type")
    removed: bool = Field(default=False, description="Whether the burg has been removed")
    lock: bool = Field(default=False, description="Whether the burg is locked for editing")


class River(Entity):
    """Data structure for a river."""

    type: str = Field(default="River", description="River, Creek or Brook")
    source: int = Field(default=0, description="Source cell")
    mouth: int = Field(default=0, description="Mouth cell")
    cells: List[int] = Field(default_factory=list, description="Cells along the river course")
    discharge: float = Field(default=0.0, description="Flux at the mouth")
    length: float = Field(default=0.0, description="River length")
    width: float = Field(default=0.0, description="River width at the mouth")
    parent: int = Field(default=0, description="River this one flows into")
    basin: int = Field(default=0, description="Root river of the basin")


class Marker(BaseModel):
    """A point of interest. Markers have no soft-delete flag."""

    id: int = Field(description="Marker index")
    type: str = Field(default="", description="Marker type")
    icon: str = Field(default="", description="Marker icon")
    x: float = Field(description="X coordinate")
    y: float = Field(description="Y coordinate")
    cell: int = Field(default=0, description="Cell ID of the marker")


class Zone(BaseModel):
    """A free-form group of cells."""

    id: int = Field(description="Zone index")
    name: str = Field(default="", description="Zone name")
    type: str = Field(default="", description="Zone type")
    color: str = Field(default="#000000", description="Zone color")
    cells: List[int] = Field(default_factory=list, description="Unique member cell IDs")
    hidden: bool = Field(default=False, description="Whether the zone is hidden")


class Note(BaseModel):
    """Free text attached to an entity, addressed by string id."""

    id: str = Field(description="Note id, e.g. 'marker3'")
    name: str = Field(default="", description="Note title")
    legend: str = Field(default="", description="Note text")
