from __future__ import annotations

"""Skills surfaced as agent tools.

A skill is a described capability (manifest) with an input schema
(descriptor). ``SkillRegistry.to_tools`` turns skills into ``skill.<id>``
tools whose metadata feeds the capability snapshot, and
``SkillMetadataExtractor`` offers read-only ``skill.list`` and
``skill.describe`` introspection tools.

Skills are constructed in code; parsing skill documents from disk is out of
scope for this package.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import Field

from .capabilities.base import Tool, ToolContext
from .capabilities.builtin import function_tool
from .errors import SkillNotFoundError, SkillNotLoadedError, SkillSchemaError
from .schemas.base import BaseSchema
from .schemas.domain import ToolKind

OPEN_INPUT_SCHEMA: Dict[str, Any] = {"type": "object", "additionalProperties": True}

DetailLevel = Literal["summary", "full"]


class SkillMode(str, Enum):
    function_tool = "function_tool"
    child_agent = "child_agent"


class SkillExample(BaseSchema):
    title: str
    input: Dict[str, Any] = Field(default_factory=dict)
    expected_output: Optional[Dict[str, Any]] = None


class SkillDescriptor(BaseSchema):
    skill_id: str = Field(min_length=1)
    mode: SkillMode = SkillMode.function_tool
    input_schema: Dict[str, Any] = Field(default_factory=lambda: dict(OPEN_INPUT_SCHEMA))
    output_schema: Optional[Dict[str, Any]] = None


class SkillManifest(BaseSchema):
    skill_id: str = Field(min_length=1)
    name: str
    overview: str = Field(min_length=1)
    usage_examples: List[SkillExample] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    input_schema: Dict[str, Any] = Field(default_factory=lambda: dict(OPEN_INPUT_SCHEMA))


class Skill(BaseSchema):
    descriptor: SkillDescriptor
    manifest: SkillManifest
    source_path: Optional[str] = None


class SkillSummary(BaseSchema):
    skill_id: str
    name: str
    overview: str
    tags: List[str] = Field(default_factory=list)


def _validate_skills(skills: Sequence[Skill]) -> None:
    if not isinstance(skills, (list, tuple)):
        raise SkillNotLoadedError("skills must be a list.")
    seen: set[str] = set()
    for s in skills:
        skill_id = s.descriptor.skill_id
        if s.manifest.skill_id != skill_id:
            raise SkillSchemaError(
                f"Skill descriptor and manifest disagree on id: {skill_id!r} != {s.manifest.skill_id!r}",
                details={"skill_id": skill_id},
            )
        if skill_id in seen:
            raise SkillSchemaError(f"Duplicate skill id: {skill_id}", details={"skill_id": skill_id})
        seen.add(skill_id)


class SkillRegistry:
    """Turn skills into agent tools."""

    def to_tools(self, skills: Sequence[Skill]) -> List[Tool]:
        _validate_skills(skills)
        return [self._to_tool(s) for s in skills]

    @staticmethod
    def _to_tool(skill: Skill) -> Tool:
        descriptor = skill.descriptor

        def _execute(args: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
            return {"skill_id": descriptor.skill_id, "mode": descriptor.mode.value, "args": args}

        return Tool(
            name=f"skill.{descriptor.skill_id}",
            description=skill.manifest.overview,
            execute=_execute,
            kind=ToolKind.skill,
            parameters=descriptor.input_schema,
            metadata={
                "skill_id": descriptor.skill_id,
                "mode": descriptor.mode.value,
                "source_path": skill.source_path,
                "skill_overview": skill.manifest.overview,
                "skill_constraints": list(skill.manifest.constraints),
                "skill_tags": list(skill.manifest.tags),
            },
        )


class SkillMetadataExtractor:
    """Read-only views over a skill list."""

    async def list_skills(self, skills: Sequence[Skill]) -> List[SkillSummary]:
        _validate_skills(skills)
        return [
            SkillSummary(
                skill_id=s.descriptor.skill_id,
                name=s.manifest.name,
                overview=s.manifest.overview,
                tags=list(s.manifest.tags),
            )
            for s in skills
        ]

    async def describe_skill(
        self, skills: Sequence[Skill], skill_id: str, detail_level: DetailLevel = "summary"
    ) -> SkillManifest:
        """Return the manifest; ``summary`` keeps only the first usage example."""
        _validate_skills(skills)
        skill = next((s for s in skills if s.descriptor.skill_id == skill_id), None)
        if skill is None:
            raise SkillNotFoundError(skill_id)
        if detail_level == "full":
            return skill.manifest.model_copy(deep=True)
        return skill.manifest.model_copy(deep=True, update={"usage_examples": skill.manifest.usage_examples[:1]})

    def to_introspection_tools(self, skills: Sequence[Skill]) -> List[Tool]:
        _validate_skills(skills)

        async def _list(args: Dict[str, Any], ctx: ToolContext) -> List[Dict[str, Any]]:
            return [s.model_dump(mode="json") for s in await self.list_skills(skills)]

        async def _describe(args: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
            skill_id = args.get("skill_id") if isinstance(args.get("skill_id"), str) else ""
            detail: DetailLevel = "full" if args.get("detail_level") == "full" else "summary"
            manifest = await self.describe_skill(skills, skill_id, detail)
            return manifest.model_dump(mode="json")

        return [
            function_tool(
                "skill.list",
                "List loaded skills with summary.",
                _list,
                kind=ToolKind.introspection,
            ),
            function_tool(
                "skill.describe",
                "Describe a skill in summary or full detail.",
                _describe,
                kind=ToolKind.introspection,
                parameters={
                    "type": "object",
                    "properties": {
                        "skill_id": {"type": "string"},
                        "detail_level": {"type": "string", "enum": ["summary", "full"]},
                    },
                    "required": ["skill_id"],
                },
            ),
        ]
