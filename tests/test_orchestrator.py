"""Tests for archviz.orchestrator."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

import pytest

from archviz.config import ArchvizConfig, LLMConfig, PipelineConfig
from archviz.errors import UpstreamGenerationError
from archviz.llm.runner import StageRunner
from archviz.models import RepositoryDigest
from archviz.orchestrator import Orchestrator
from archviz.postproc.links import DiagramLinkRewriter, parse_click_directives

_EXPLANATION = "<explanation>\nThe web client calls the Python API.\n</explanation>"
_MAPPING = "<component_mapping>\n1. API: src/api.py\n2. Web client: web/\n</component_mapping>"
_DIAGRAM = (
    "```mermaid\n"
    "flowchart TD\n"
    '  Web["Web client"] --> Api["Python API"]\n'
    '  click Api "src/api.py"\n'
    '  click Web "web/"\n'
    "```"
)


class ScriptedRunner:
    """Test double returning canned responses and recording each call."""

    def __init__(self, responses: List[object]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, object]] = []

    def run(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        reasoning_effort: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        self.calls.append(
            {
                "system": system_prompt,
                "user": user_prompt,
                "reasoning_effort": reasoning_effort,
                "max_tokens": max_tokens,
            }
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return str(response)


def _orchestrator(runner: ScriptedRunner, **kwargs) -> Orchestrator:
    kwargs.setdefault("sleep", lambda _: None)
    return Orchestrator(runner, **kwargs)  # type: ignore[arg-type]


def test_pipeline_runs_three_stages_in_order(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, _DIAGRAM])

    result = _orchestrator(runner).run(sample_digest)

    assert len(runner.calls) == 3
    assert [call["reasoning_effort"] for call in runner.calls] == ["medium", "low", "low"]
    assert [call["max_tokens"] for call in runner.calls] == [2000, 2000, 5000]
    assert "src/api.py\nweb/index.ts\nconfig/settings.yml" in runner.calls[0]["user"]
    assert "A web app with a Python API." in runner.calls[0]["user"]
    assert "The web client calls the Python API." in runner.calls[1]["user"]
    assert "1. API: src/api.py" in runner.calls[2]["user"]

    assert result.explanation_text == "The web client calls the Python API."
    assert result.component_mapping == "1. API: src/api.py\n2. Web client: web/"
    assert result.diagram_text.startswith("flowchart TD")
    assert "```" not in result.diagram_text
    assert [stage.stage for stage in result.stages] == ["explanation", "component_mapping", "diagram"]
    assert all(stage.tag_found for stage in result.stages)


def test_click_targets_follow_the_component_mapping(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, _DIAGRAM])

    result = _orchestrator(runner).run(sample_digest)

    targets = {directive.target for directive in parse_click_directives(result.diagram_text)}
    assert targets == {"src/api.py", "web/"}
    linked = DiagramLinkRewriter().rewrite(result.diagram_text, "https://github.com/acme/sample", "main")
    assert '"https://github.com/acme/sample/blob/main/src/api.py" "_blank"' in linked
    assert '"https://github.com/acme/sample/tree/main/web/" "_blank"' in linked


def test_placeholders_used_for_empty_digest(digest_builder) -> None:
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, _DIAGRAM])

    _orchestrator(runner).run(digest_builder.build())

    assert "No file tree available" in runner.calls[0]["user"]
    assert "No README available" in runner.calls[0]["user"]


def test_pipeline_pauses_between_stages(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, _DIAGRAM])
    pauses: list[float] = []

    _orchestrator(runner, stage_delay=0.25, sleep=pauses.append).run(sample_digest)

    assert pauses == [0.25, 0.25]


def test_pipeline_skips_pause_when_disabled(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, _DIAGRAM])
    pauses: list[float] = []

    _orchestrator(runner, stage_delay=0, sleep=pauses.append).run(sample_digest)

    assert pauses == []


def test_missing_tag_falls_back_to_full_response(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner(["The API serves the web client.", _MAPPING, _DIAGRAM])

    result = _orchestrator(runner).run(sample_digest)

    assert result.explanation_text == "The API serves the web client."
    assert result.stages[0].tag_found is False
    assert "The API serves the web client." in runner.calls[1]["user"]


def test_failure_in_second_stage_aborts_pipeline(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner([_EXPLANATION, UpstreamGenerationError("model unavailable"), _DIAGRAM])

    with pytest.raises(UpstreamGenerationError) as excinfo:
        _orchestrator(runner).run(sample_digest)

    assert excinfo.value.stage == "component_mapping"
    assert len(runner.calls) == 2


def test_empty_diagram_is_rejected(sample_digest: RepositoryDigest) -> None:
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, "```mermaid\n```"])

    with pytest.raises(UpstreamGenerationError, match="no usable content") as excinfo:
        _orchestrator(runner).run(sample_digest)

    assert excinfo.value.stage == "diagram"


def test_from_config_applies_pack_and_caps(digest_builder) -> None:
    digest = digest_builder.files("a.py", "b.py", "c.py").with_readme("x" * 50).build()
    config = ArchvizConfig(
        pipeline=PipelineConfig(prompt_pack="concise", stage_delay=0, file_cap=2, readme_cap=10)
    )
    runner = ScriptedRunner([_EXPLANATION, _MAPPING, _DIAGRAM])

    orchestrator = Orchestrator.from_config(config, runner=runner)  # type: ignore[arg-type]
    orchestrator.run(digest)

    assert [call["reasoning_effort"] for call in runner.calls] == [None, None, None]
    assert [call["max_tokens"] for call in runner.calls] == [2000, 1000, 3000]
    first_user = runner.calls[0]["user"]
    assert "a.py\nb.py" in first_user
    assert "c.py" not in first_user
    assert "x" * 10 + "\n...(truncated)" in first_user


def test_from_config_builds_runner_from_llm_settings() -> None:
    config = ArchvizConfig(
        llm=LLMConfig(
            model="gpt-test",
            base_url="http://localhost:8080/v1/",
            api_key="secret",
            temperature=0.2,
            request_timeout=30.0,
        )
    )
    config = replace(config, pipeline=replace(config.pipeline, stage_delay=0))

    orchestrator = Orchestrator.from_config(config)

    runner = orchestrator.runner
    assert isinstance(runner, StageRunner)
    assert runner.model == "gpt-test"
    assert runner.base_url == "http://localhost:8080/v1"
    assert runner.api_key == "secret"
    assert runner.temperature == 0.2
    assert runner.request_timeout == 30.0
    assert orchestrator.stage_delay == 0
