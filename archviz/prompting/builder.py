"""Builds stage descriptors and renders their prompts from Jinja templates."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..config import StageConfig
from ..postproc.extract import clean_diagram
from .constants import (
    DEFAULT_PROMPT_PACK,
    STAGE_DIAGRAM,
    STAGE_ORDER,
    STAGE_PROFILES,
    STAGE_TAGS,
)


@dataclass(frozen=True)
class StageDescriptor:
    """Everything the sequencer needs to run one stage."""

    name: str
    tag: Optional[str]
    reasoning_effort: Optional[str]
    max_tokens: int
    system_template: str
    user_template: str
    postprocess: Optional[Callable[[str], str]] = None

    @property
    def output_key(self) -> str:
        return self.name


@dataclass(frozen=True)
class StagePrompt:
    """Rendered system/user pair for one model call."""

    system: str
    user: str


class PromptBuilder:
    """Resolves the prompt pack into an ordered tuple of stages."""

    def __init__(
        self,
        template_pack: str | None = None,
        *,
        templates_dir: Path | None = None,
        overrides: Mapping[str, StageConfig] | None = None,
    ) -> None:
        self.template_pack = template_pack or DEFAULT_PROMPT_PACK
        if self.template_pack not in STAGE_PROFILES:
            raise ValueError(f"Unknown prompt pack '{self.template_pack}'")
        self.templates_dir = templates_dir
        self._overrides: Dict[str, StageConfig] = dict(overrides or {})
        self._env = self._create_env(templates_dir)

    def stages(self) -> Tuple[StageDescriptor, ...]:
        profile = STAGE_PROFILES[self.template_pack]
        descriptors = []
        for name in STAGE_ORDER:
            effort, budget = profile[name]
            descriptor = StageDescriptor(
                name=name,
                tag=STAGE_TAGS[name],
                reasoning_effort=effort,
                max_tokens=budget,
                system_template=f"{name}.system.j2",
                user_template=f"{name}.user.j2",
                postprocess=clean_diagram if name == STAGE_DIAGRAM else None,
            )
            descriptors.append(self._apply_override(descriptor))
        return tuple(descriptors)

    def render(self, stage: StageDescriptor, context: Mapping[str, str]) -> StagePrompt:
        system = self._env.get_template(stage.system_template).render(**context)
        user = self._env.get_template(stage.user_template).render(**context)
        return StagePrompt(system=system.strip(), user=user.strip())

    def _apply_override(self, descriptor: StageDescriptor) -> StageDescriptor:
        override = self._overrides.get(descriptor.name)
        if override is None:
            return descriptor
        effort = descriptor.reasoning_effort
        if override.disable_reasoning:
            effort = None
        elif override.reasoning_effort is not None:
            effort = override.reasoning_effort
        budget = override.max_tokens if override.max_tokens is not None else descriptor.max_tokens
        return replace(descriptor, reasoning_effort=effort, max_tokens=budget)

    def _create_env(self, templates_dir: Path | None) -> Environment:
        default_dir = Path(__file__).with_name("templates") / self.template_pack
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(default_dir))
        loader = FileSystemLoader(directories)
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )


__all__ = ["PromptBuilder", "StageDescriptor", "StagePrompt"]
