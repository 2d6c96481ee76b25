"""Streamlit UI for turning text into a deck of generated slide images."""

from __future__ import annotations

import asyncio
import colorsys
import hashlib
import io
import json
import re
import textwrap
from typing import Optional

import streamlit as st
from PIL import Image, ImageDraw

from LLM_API.data_classes import (
    BaseRequest,
    BaseResponse,
    ImageGenerationRequest,
    ImageGenerationResponse,
    InlineDataPart,
    StructuredOutputRequest,
    StructuredOutputResponse,
)

from slidecraft.config import GenerationSettings
from slidecraft.orchestrator import GenerationOrchestrator, build_orchestrator
from slidecraft.pptx_renderer import SlideDeckRenderer
from slidecraft.slide_models import ProjectStep, SlidePlan, SlideStyle

STUB_MODE = "Stub (offline)"
GEMINI_MODE = "Gemini (GEMINI_API_KEY)"

_SLIDE_COUNT_RE = re.compile(r"cohesive (\d+)-page")
_INPUT_RE = re.compile(r'INPUT TEXT:\n"(.*?)"\n\nDESIGN SYSTEM CONTEXT', re.S)
_TITLE_RE = re.compile(r'TITLE: "(.*?)"\n', re.S)
_REFINE_RE = re.compile(r'Input: "(.*)"\s*$', re.S)


def _extract_source_text(prompt: str) -> str:
    """Return the source text embedded in an outline ``prompt``."""

    match = _INPUT_RE.search(prompt or "")
    return match.group(1).strip() if match else (prompt or "").strip()


class StubGenerationLLM:
    """Offline client that mimics the Gemini provider for demos and tests."""

    model_name = "stub"

    def __init__(self, *, design_system: str = "Stub design system: navy background, white type.") -> None:
        self.design_system = design_system

    # ------------------------------------------------------------------
    # LLM compatible interface
    # ------------------------------------------------------------------
    async def generate_content(self, request: BaseRequest) -> BaseResponse:
        prompt = request.prompt or ""
        refine = _REFINE_RE.search(prompt)
        if prompt.startswith("Optimize this image generation prompt") and refine:
            text = f"{refine.group(1)}, rendered as a clean flat infographic"
        else:
            text = self.design_system
        return BaseResponse(text=text, model_used="stub-text")

    async def generate_structured_output(
        self, request: StructuredOutputRequest
    ) -> StructuredOutputResponse:
        match = _SLIDE_COUNT_RE.search(request.prompt or "")
        slide_count = int(match.group(1)) if match else 3
        source = _extract_source_text(request.prompt)
        chunks = [line.strip() for line in source.splitlines() if line.strip()] or [source or "Untitled"]

        slides = [
            {
                "id": 1,
                "title": textwrap.shorten(chunks[0], width=40, placeholder="…"),
                "content": "Cover",
                "visualDescription": "Minimalist typography composition on a dark background.",
            }
        ]
        for idx in range(2, slide_count + 1):
            chunk = chunks[(idx - 1) % len(chunks)]
            slides.append(
                {
                    "id": idx,
                    "title": f"Part {idx - 1}",
                    "content": chunk,
                    "visualDescription": f"Infographic explaining: {chunk[:60]}",
                }
            )
        return StructuredOutputResponse(
            text=json.dumps(slides, ensure_ascii=False),
            parsed_output=slides,
            model_used="stub-structured",
        )

    async def generate_image(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        match = _TITLE_RE.search(request.prompt or "")
        title = match.group(1) if match else "Slide"
        return ImageGenerationResponse(
            parts=[InlineDataPart(data=_placeholder_png(title), mime_type="image/png")],
            model_used="stub-image",
        )


def _placeholder_png(title: str, size=(640, 360)) -> bytes:
    digest = hashlib.sha1(title.encode("utf-8")).digest()
    hue = digest[0] / 255
    red, green, blue = (int(channel * 255) for channel in colorsys.hsv_to_rgb(hue, 0.45, 0.55))
    image = Image.new("RGB", size, (red, green, blue))
    ImageDraw.Draw(image).text((32, 32), title, fill=(255, 255, 255))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _instantiate_llm(choice: str):
    if choice == GEMINI_MODE:
        try:
            from LLM_API.providers.gemini import GeminiModel

            return GeminiModel()
        except Exception as exc:  # pragma: no cover - depends on runtime secrets
            st.warning("Could not initialise the Gemini client. Check GEMINI_API_KEY.")
            st.text(str(exc))
    return StubGenerationLLM()


def _get_orchestrator(choice: str) -> GenerationOrchestrator:
    current: Optional[GenerationOrchestrator] = st.session_state.get("orchestrator")
    if current is not None and st.session_state.get("llm_choice") == choice:
        return current
    orchestrator = build_orchestrator(
        _instantiate_llm(choice),
        GenerationSettings.from_env(),
        state=current.state if current is not None else None,
    )
    st.session_state["orchestrator"] = orchestrator
    st.session_state["llm_choice"] = choice
    st.session_state.setdefault("notices_shown", 0)
    return orchestrator


async def _start_and_settle(orchestrator: GenerationOrchestrator) -> None:
    await orchestrator.start_session()
    await orchestrator.wait_for_chain()


async def _generate_and_settle(orchestrator: GenerationOrchestrator, slide_id: int, auto_chain: bool) -> None:
    await orchestrator.generate_one(slide_id, auto_chain=auto_chain)
    await orchestrator.wait_for_chain()


def _show_new_notices(orchestrator: GenerationOrchestrator) -> None:
    shown = st.session_state.get("notices_shown", 0)
    for notice in orchestrator.notices[shown:]:
        st.error(notice.message)
    st.session_state["notices_shown"] = len(orchestrator.notices)


def _render_input(orchestrator: GenerationOrchestrator) -> None:
    state = orchestrator.state
    st.subheader("1. Source content")
    upload = st.file_uploader("Upload a text or markdown document", type=["txt", "md"])
    if upload is not None:
        orchestrator.set_input_text(upload.getvalue().decode("utf-8"))

    text = st.text_area("Text", value=state.input_text, height=260)
    orchestrator.set_input_text(text)

    col_a, col_b = st.columns(2)
    with col_a:
        slide_count = st.number_input(
            "Number of slides",
            min_value=1,
            max_value=orchestrator.max_slide_count,
            value=state.target_slide_count,
            step=1,
        )
        style = st.radio(
            "Content style",
            [SlideStyle.CONCISE.value, SlideStyle.DETAILED.value],
            index=0 if state.selected_style is SlideStyle.CONCISE else 1,
            horizontal=True,
        )
    with col_b:
        custom_style = st.text_area(
            "Custom design system (optional, used verbatim)",
            value=state.custom_style_prompt,
            height=120,
        )
    orchestrator.configure(slide_count=int(slide_count), style=SlideStyle(style), custom_style=custom_style)

    if st.button("Generate outline", type="primary"):
        if not state.input_text.strip():
            st.error("Enter some content or upload a document first.")
            return
        with st.spinner("Designing the deck and planning the outline..."):
            try:
                asyncio.run(orchestrator.generate_plan())
            except Exception as exc:
                st.error("Outline generation failed. Please try again.")
                st.exception(exc)
                return
        st.rerun()


def _render_planning(orchestrator: GenerationOrchestrator) -> None:
    st.subheader("2. Outline")
    with st.expander("Design system", expanded=False):
        st.write(orchestrator.design_system)

    for slide in list(orchestrator.slides):
        with st.expander(f"{slide.id}. {slide.title}", expanded=False):
            title = st.text_input("Title", value=slide.title, key=f"title_{slide.id}")
            content = st.text_area("Content", value=slide.content, key=f"content_{slide.id}")
            visual = st.text_area(
                "Visual description", value=slide.visual_description, key=f"visual_{slide.id}"
            )
            _apply_edits(orchestrator, slide, title=title, content=content, visual_description=visual)

    cols = st.columns(4)
    with cols[0]:
        if st.button("Back to input"):
            orchestrator.back_to_input()
            st.rerun()
    with cols[1]:
        if st.button("Add slide"):
            orchestrator.add_slide()
            st.rerun()
    with cols[2]:
        st.download_button(
            "Download outline JSON",
            data=json.dumps([s.to_dict() for s in orchestrator.slides], ensure_ascii=False, indent=2),
            file_name="outline.json",
            mime="application/json",
        )
    with cols[3]:
        if st.button("Start generating", type="primary"):
            with st.spinner("Generating slides one after another..."):
                asyncio.run(_start_and_settle(orchestrator))
            st.rerun()


def _render_workbench(orchestrator: GenerationOrchestrator, renderer: SlideDeckRenderer) -> None:
    st.subheader("3. Workbench")
    with st.expander("Global style", expanded=False):
        st.write(orchestrator.design_system)
        adjustment = st.text_area("Adjust the design system", key="style_adjustment")
        if st.button("Update style") and adjustment.strip():
            with st.spinner("Updating design system..."):
                updated = asyncio.run(orchestrator.update_global_style(adjustment))
            if updated:
                st.success("Design system updated. Regenerate slides to apply the new style.")

    for slide in list(orchestrator.slides):
        st.markdown(f"#### {slide.id}. {slide.title}")
        if slide.generated_image is not None:
            st.image(slide.generated_image.data, width="stretch")
        else:
            st.caption(f"Status: {slide.status.value}")
        override = st.text_area(
            "Adjustments for this slide",
            value=slide.user_prompt_override or "",
            key=f"override_{slide.id}",
        )
        _apply_edits(orchestrator, slide, user_prompt_override=override or None)
        cols = st.columns(3)
        with cols[0]:
            if st.button("Regenerate", key=f"regen_{slide.id}"):
                with st.spinner(f"Generating slide {slide.id}..."):
                    asyncio.run(_generate_and_settle(orchestrator, slide.id, False))
                st.rerun()
        with cols[1]:
            if st.button("Continue from here", key=f"chain_{slide.id}"):
                with st.spinner("Resuming auto generation..."):
                    asyncio.run(_generate_and_settle(orchestrator, slide.id, True))
                st.rerun()
        with cols[2]:
            if st.button("Refine description", key=f"refine_{slide.id}"):
                asyncio.run(orchestrator.refine_description(slide.id))
                st.rerun()

    cols = st.columns(2)
    with cols[0]:
        if st.button("Back to outline"):
            orchestrator.back_to_outline()
            st.rerun()
    with cols[1]:
        if st.button("Export PPTX"):
            slides = orchestrator.export_deck()
            st.session_state["pptx_bytes"] = renderer.render_document(slides).getvalue()
        if st.session_state.get("pptx_bytes"):
            st.download_button(
                "Download PPTX",
                data=st.session_state["pptx_bytes"],
                file_name="presentation.pptx",
                mime="application/vnd.openxmlformats-officedocument.presentationml.presentation",
            )


def _apply_edits(orchestrator: GenerationOrchestrator, slide: SlidePlan, **values) -> None:
    for field_name, value in values.items():
        if getattr(slide, field_name) != value:
            orchestrator.update_slide(slide.id, field_name, value)


def main() -> None:
    st.set_page_config(page_title="SlideCraft", layout="wide")
    st.title("SlideCraft")

    with st.sidebar:
        st.header("Generation settings")
        choice = st.radio(
            "Backend",
            (STUB_MODE, GEMINI_MODE),
            index=0,
            help="Use the offline stub when no GEMINI_API_KEY is configured.",
        )

    orchestrator = _get_orchestrator(choice)
    renderer = SlideDeckRenderer()
    step = orchestrator.state.step

    if step is ProjectStep.INPUT:
        _render_input(orchestrator)
    elif step is ProjectStep.PLANNING:
        _render_planning(orchestrator)
    else:
        _render_workbench(orchestrator, renderer)

    _show_new_notices(orchestrator)


if __name__ == "__main__":  # pragma: no cover - Streamlit handles execution
    main()
