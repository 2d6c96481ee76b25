import asyncio
import json

import pytest

pytest.importorskip("streamlit")
pytest.importorskip("PIL")

from LLM_API.data_classes import BaseRequest, create_image_request

import app
from slidecraft.config import GenerationSettings
from slidecraft.orchestrator import build_orchestrator
from slidecraft.slide_models import SlideStyle


def test_extract_source_text_handles_missing_marker():
    assert app._extract_source_text("  plain prompt  ") == "plain prompt"


def test_stub_refine_appends_style_hint():
    llm = app.StubGenerationLLM()
    request = BaseRequest(prompt='Optimize this image generation prompt.\n\nInput: "a chart"')

    response = asyncio.run(llm.generate_content(request))

    assert response.text == "a chart, rendered as a clean flat infographic"


def test_stub_image_is_png():
    llm = app.StubGenerationLLM()

    response = asyncio.run(llm.generate_image(create_image_request('TITLE: "Hello"\nCONTENT: "x"')))

    part = response.first_image()
    assert part is not None
    assert part.data.startswith(b"\x89PNG")


def test_stub_backend_drives_the_full_pipeline():
    settings = GenerationSettings(chain_delay=0, settle_delay=0, request_timeout=None)
    orchestrator = build_orchestrator(app.StubGenerationLLM(design_system="Stub DS"), settings)
    orchestrator.set_input_text("Quarterly review\nRevenue up\nHiring plan")
    orchestrator.configure(slide_count=3, style=SlideStyle.CONCISE, custom_style="")

    async def scenario():
        await orchestrator.generate_plan()
        await orchestrator.start_session()
        await orchestrator.wait_for_chain()

    asyncio.run(scenario())

    slides = orchestrator.slides
    assert orchestrator.design_system == "Stub DS"
    assert [slide.title for slide in slides] == ["Quarterly review", "Part 1", "Part 2"]
    assert slides[0].content == "Cover"
    assert all(slide.status.value == "DONE" for slide in slides)
    assert len({slide.generated_image.data for slide in slides}) == 3
    json.dumps([slide.to_dict() for slide in slides])
