"""Pipeline orchestration for the explanation, mapping and diagram stages."""

from __future__ import annotations

import time
from typing import Callable, Dict, List, Sequence

from .config import ArchvizConfig
from .digest import DigestTruncator
from .errors import UpstreamGenerationError
from .llm.runner import StageRunner
from .logging import get_logger
from .models import PipelineResult, RepositoryDigest, StageOutput, TruncatedDigest
from .postproc.extract import find_tagged_block
from .prompting.builder import PromptBuilder, StageDescriptor
from .prompting.constants import STAGE_DIAGRAM, STAGE_EXPLANATION, STAGE_MAPPING


class Orchestrator:
    """Runs the configured stages strictly in order, threading each output forward."""

    def __init__(
        self,
        runner: StageRunner | None = None,
        *,
        truncator: DigestTruncator | None = None,
        prompt_builder: PromptBuilder | None = None,
        stages: Sequence[StageDescriptor] | None = None,
        stage_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runner = runner or StageRunner()
        self.truncator = truncator or DigestTruncator()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.stages = tuple(stages) if stages is not None else self.prompt_builder.stages()
        self.stage_delay = stage_delay
        self._sleep = sleep
        self.logger = get_logger("orchestrator")

    @classmethod
    def from_config(
        cls,
        config: ArchvizConfig,
        *,
        runner: StageRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "Orchestrator":
        """Build an orchestrator whose runner, caps and stage budgets follow ``config``."""
        if runner is None:
            runner_kwargs: Dict[str, object] = {
                "base_url": config.llm.base_url,
                "temperature": config.llm.temperature,
                "request_timeout": config.llm.request_timeout or 120.0,
            }
            if config.llm.api_key:
                runner_kwargs["api_key"] = config.llm.api_key
            runner = StageRunner(config.llm.model, **runner_kwargs)  # type: ignore[arg-type]
        pipeline = config.pipeline
        builder = PromptBuilder(
            pipeline.prompt_pack,
            templates_dir=pipeline.templates_dir,
            overrides=pipeline.stages,
        )
        truncator = DigestTruncator(file_cap=pipeline.file_cap, readme_cap=pipeline.readme_cap)
        return cls(
            runner,
            truncator=truncator,
            prompt_builder=builder,
            stage_delay=pipeline.stage_delay,
            sleep=sleep,
        )

    def run(self, digest: RepositoryDigest) -> PipelineResult:
        """Generate the explanation, component mapping and diagram for ``digest``."""
        truncated = self.truncator.truncate(digest)
        self.logger.info(
            "Starting pipeline for %s (%d files%s)",
            digest.name,
            len(truncated.file_paths),
            ", README truncated" if truncated.readme_truncated else "",
        )
        context = self._initial_context(truncated)
        outputs: List[StageOutput] = []

        for index, stage in enumerate(self.stages):
            if index and self.stage_delay > 0:
                self._sleep(self.stage_delay)
            output = self._run_stage(stage, context)
            context[stage.output_key] = output.extracted
            outputs.append(output)

        self.logger.info("Pipeline finished for %s", digest.name)
        return PipelineResult(
            diagram_text=context.get(STAGE_DIAGRAM, ""),
            explanation_text=context.get(STAGE_EXPLANATION, ""),
            component_mapping=context.get(STAGE_MAPPING, ""),
            stages=tuple(outputs),
        )

    def _run_stage(self, stage: StageDescriptor, context: Dict[str, str]) -> StageOutput:
        prompt = self.prompt_builder.render(stage, context)
        self.logger.info(
            "Running stage %s (effort=%s, max_tokens=%d)",
            stage.name,
            stage.reasoning_effort or "default",
            stage.max_tokens,
        )
        try:
            raw = self.runner.run(
                prompt.system,
                prompt.user,
                reasoning_effort=stage.reasoning_effort,
                max_tokens=stage.max_tokens,
            )
        except UpstreamGenerationError as exc:
            if exc.stage is None:
                exc.stage = stage.name
            self.logger.error("Stage %s failed: %s", stage.name, exc)
            raise

        extracted, tag_found = self._extract(stage, raw)
        if stage.postprocess is not None:
            extracted = stage.postprocess(extracted)
        if not extracted:
            raise UpstreamGenerationError(
                f"Stage {stage.name} produced no usable content", stage=stage.name
            )
        return StageOutput(stage=stage.name, raw=raw, extracted=extracted, tag_found=tag_found)

    def _extract(self, stage: StageDescriptor, raw: str) -> tuple[str, bool]:
        if stage.tag is None:
            return raw.strip(), True
        block = find_tagged_block(raw, stage.tag)
        if block is None:
            self.logger.warning(
                "Stage %s response lacked <%s> tags; using the full response",
                stage.name,
                stage.tag,
            )
            return raw.strip(), False
        return block, True

    @staticmethod
    def _initial_context(truncated: TruncatedDigest) -> Dict[str, str]:
        return {
            "repository_name": truncated.name,
            "repository_description": truncated.description,
            "file_tree": truncated.file_tree,
            "readme": truncated.readme_section,
        }


__all__ = ["Orchestrator"]
