"""
Engine configuration.

Every layout tunable lives on ``EngineSettings``.  Defaults are the values the
canvas has always used; any of them can be overridden from the environment
with a ``MOSAICFLOW_`` prefix, e.g. ``MOSAICFLOW_SNAP_THRESHOLD=8``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "MOSAICFLOW_"


class EngineSettings(BaseSettings):
    """Tunables for the layout engine.

    Attributes:
        collision_margin:            Extra gap added when pushing two cards apart.
        collision_max_iterations:    Hard cap on resolution passes.
        collision_overlap_threshold: Overlap fraction (of the smaller card)
                                     tolerated before a pair counts as colliding.
        placement_margin:            Clearance kept around existing cards.
        placement_step:              Distance between candidate points.
        placement_max_rings:         Rings searched before giving up.
        snap_threshold:              Max distance for an alignment guide.
        guide_overhang:              How far guides extend past the shapes.
        group_padding:               Space between a group's edge and its children.
        group_header_height:         Extra top padding for the group label.
        contain_grouped_nodes:       Set ``extent="parent"`` on grouped children.
        group_delete_policy:         What deleting a group does to its children.
        duplicate_offset:            Offset of duplicated cards from the source.
        max_parent_depth:            Cap on ancestor walks.
    """
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    collision_margin: float = 15.0
    collision_max_iterations: int = Field(default=100, ge=1)
    collision_overlap_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    placement_margin: float = 20.0
    placement_step: float = Field(default=20.0, gt=0)
    placement_max_rings: int = Field(default=50, ge=0)

    snap_threshold: float = Field(default=5.0, ge=0)
    guide_overhang: float = 20.0

    group_padding: float = 40.0
    group_header_height: float = 30.0
    contain_grouped_nodes: bool = True
    group_delete_policy: Literal["reparent", "cascade"] = "reparent"

    duplicate_offset: float = 50.0
    max_parent_depth: int = Field(default=64, ge=1)


def load_settings(**overrides: Any) -> EngineSettings:
    """Build settings from defaults, ``MOSAICFLOW_*`` environment variables and
    explicit ``overrides`` (which win over the environment).

    Raises pydantic ``ValidationError`` for values that do not parse.
    """
    return EngineSettings(**overrides)
