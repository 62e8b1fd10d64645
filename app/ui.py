"""Gradio interface for the fashion image generator."""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import gradio as gr
from PIL import Image

from fashiongen.core.generation_service import GenerationService
from fashiongen.core.options import (
    ACCESSORIES_OPTIONS,
    AGE_RANGE_OPTIONS,
    BACKGROUND_PRESETS,
    BODY_TYPE_OPTIONS,
    CAMERA_ANGLE_OPTIONS,
    DEFAULT_ENVIRONMENT_SETTINGS,
    DEFAULT_MODEL_SETTINGS,
    ETHNICITY_OPTIONS,
    GENDER_OPTIONS,
    HAIR_COLOR_OPTIONS,
    HAIR_STYLE_OPTIONS,
    HEIGHT_OPTIONS,
    LENS_STYLE_OPTIONS,
    LIGHTING_OPTIONS,
    POSE_OPTIONS,
    SEASON_OPTIONS,
    TIME_OF_DAY_OPTIONS,
    WEATHER_OPTIONS,
)
from fashiongen.utils.gallery import GalleryHistory
from fashiongen.utils.image_codec import image_to_data_uri
from fashiongen.utils.result_store import ResultStore

logger = logging.getLogger(__name__)

# Order of the setting dropdowns as they are passed to callbacks
MODEL_FIELDS = [
    "gender", "bodyType", "ageRange", "ethnicity", "hairStyle",
    "hairColor", "height", "pose", "accessories",
]
ENVIRONMENT_FIELDS = [
    "backgroundPreset", "backgroundCustom", "lighting", "lensStyle",
    "timeOfDay", "weather", "season", "cameraAngle",
]

_PRESET_LABELS = {key: label for label, key in BACKGROUND_PRESETS.items()}


def default_settings() -> Dict[str, Dict[str, str]]:
    """Fresh copy of the default settings object."""
    return {
        "modelSettings": dict(DEFAULT_MODEL_SETTINGS),
        "environmentSettings": dict(DEFAULT_ENVIRONMENT_SETTINGS),
    }


def build_settings(*values: Any) -> Dict[str, Dict[str, str]]:
    """Assemble the request settings object from the dropdown values.

    Args:
        *values: Model field values followed by environment field values,
            in MODEL_FIELDS + ENVIRONMENT_FIELDS order. The background preset
            may be given by its display label.

    Returns:
        ``{"modelSettings": ..., "environmentSettings": ...}``
    """
    model_values = values[:len(MODEL_FIELDS)]
    environment_values = values[len(MODEL_FIELDS):]

    model = {name: value or "" for name, value in zip(MODEL_FIELDS, model_values)}
    environment = {name: value or "" for name, value in zip(ENVIRONMENT_FIELDS, environment_values)}
    environment["backgroundPreset"] = BACKGROUND_PRESETS.get(
        environment.get("backgroundPreset", ""), environment.get("backgroundPreset", "")
    )
    environment["backgroundCustom"] = environment.get("backgroundCustom", "").strip()

    return {"modelSettings": model, "environmentSettings": environment}


def settings_to_values(state: Any) -> List[str]:
    """Flatten a persisted settings object back into dropdown values.

    Missing or malformed entries fall back to the defaults.
    """
    merged = default_settings()
    if isinstance(state, dict):
        for section in ("modelSettings", "environmentSettings"):
            stored = state.get(section)
            if isinstance(stored, dict):
                merged[section].update(
                    {k: v for k, v in stored.items() if k in merged[section] and isinstance(v, str)}
                )

    model = merged["modelSettings"]
    environment = merged["environmentSettings"]
    values = [model[name] for name in MODEL_FIELDS]
    for name in ENVIRONMENT_FIELDS:
        value = environment[name]
        if name == "backgroundPreset":
            value = _PRESET_LABELS.get(value, _PRESET_LABELS[DEFAULT_ENVIRONMENT_SETTINGS["backgroundPreset"]])
        values.append(value)
    return values


def open_gallery(gallery_state: Any, max_items: int) -> Tuple[GalleryHistory, List[Dict[str, Any]]]:
    """Load the persisted gallery and keep a saved copy in step with it.

    Returns:
        Tuple of (gallery, saved state). The saved state list is rewritten
        in place on every change, so callbacks return it for persistence.
    """
    history = GalleryHistory.from_state(gallery_state, max_items=max_items)
    saved = history.to_state()

    def save(changed: GalleryHistory) -> None:
        saved[:] = changed.to_state()
        logger.info(f"Gallery now holds {changed.get_count()} images")

    history.subscribe(save)
    return history, saved


def _image_exists(store: ResultStore) -> Callable[[str], bool]:
    return lambda path: store.resolve_image_path(path).is_file()


def gallery_view(gallery_state: Any, store: ResultStore, max_items: int = 20) -> Tuple[List[tuple], str]:
    """Gallery items and count label for the persisted gallery state."""
    history = GalleryHistory.from_state(gallery_state, max_items=max_items)
    # Files removed from disk are skipped but stay in the stored state
    items = history.get_images_for_gallery(
        lambda p: str(store.resolve_image_path(p)), exists=_image_exists(store)
    )
    count = history.get_count()
    return items, f"Gallery: {count} image{'s' if count != 1 else ''}"


def generate_fashion_image(
    service: GenerationService,
    store: ResultStore,
    image: Optional[Image.Image],
    gallery_state: Any,
    max_items: int,
    *setting_values: Any
) -> Tuple[Optional[str], str, str, List[Dict[str, Any]], Dict[str, Dict[str, str]]]:
    """Generate a fashion image from the uploaded clothing photo.

    Args:
        service: Generation service handling the request
        store: Result store used to locate the saved image
        image: Uploaded clothing image
        gallery_state: Persisted gallery entries
        max_items: Gallery cap
        *setting_values: Dropdown values, see ``build_settings``

    Returns:
        Tuple of (image file path or None, prompt used, status message,
        new gallery state, settings object to persist)
    """
    settings_obj = build_settings(*setting_values)

    if image is None:
        return None, "", "❌ Error: Please upload a clothing image", gallery_state or [], settings_obj

    payload = {"settings": settings_obj, "imageData": image_to_data_uri(image)}
    response = service.handle(payload)

    if not response.success:
        logger.error(f"UI generation failed ({response.status_code}): {response.message}")
        return None, "", f"❌ {response.message}", gallery_state or [], settings_obj

    history, saved = open_gallery(gallery_state, max_items)
    history.add(response.image_url)

    image_path = str(store.resolve_image_path(response.image_url))
    status = f"✅ Image generated successfully!\nSaved as: {response.image_url}"
    return image_path, response.prompt_used, status, saved, settings_obj


def delete_gallery_item(
    gallery_state: Any,
    index: Optional[int],
    store: ResultStore,
    max_items: int
) -> List[Dict[str, Any]]:
    """Remove the entry shown at ``index`` in the gallery view.

    ``index`` counts only displayed items, the same list ``gallery_view``
    builds, so hidden entries never shift the selection.
    """
    history, saved = open_gallery(gallery_state, max_items)
    visible = history.get_visible(_image_exists(store))
    if index is None or not 0 <= index < len(visible):
        return saved
    history.delete(visible[index].relative_path)
    return saved


def clear_gallery(gallery_state: Any, max_items: int) -> List[Dict[str, Any]]:
    """Remove every gallery entry."""
    history, saved = open_gallery(gallery_state, max_items)
    history.clear()
    return saved


def create_ui(
    service: GenerationService,
    store: ResultStore,
    max_gallery_items: int = 20
) -> gr.Blocks:
    """Create the Gradio interface.

    Args:
        service: Generation service handling requests in-process
        store: Result store used to locate saved images
        max_gallery_items: Gallery cap

    Returns:
        Gradio Blocks interface
    """
    with gr.Blocks(title="AI Fashion Image Generator") as demo:
        gr.Markdown(
            """
            # 👗 AI Fashion Image Generator

            Upload a clothing photo, describe the model and the scene, and get a
            photorealistic fashion photograph.
            """
        )

        gallery_state = gr.BrowserState([], storage_key="fashiongen_gallery")
        settings_state = gr.BrowserState(default_settings(), storage_key="fashiongen_settings")
        selected_index = gr.State(value=None)

        with gr.Tabs():
            with gr.Tab("🎨 Generate"):
                with gr.Row():
                    with gr.Column(scale=1):
                        clothing_image = gr.Image(
                            label="Clothing Image",
                            type="pil",
                            sources=["upload", "clipboard"],
                        )

                        with gr.Accordion("Model", open=True):
                            gender = gr.Dropdown(GENDER_OPTIONS, label="Gender")
                            body_type = gr.Dropdown(BODY_TYPE_OPTIONS, label="Body Type")
                            age_range = gr.Dropdown(AGE_RANGE_OPTIONS, label="Age Range")
                            ethnicity = gr.Dropdown(ETHNICITY_OPTIONS, label="Ethnicity")
                            with gr.Row():
                                hair_style = gr.Dropdown(HAIR_STYLE_OPTIONS, label="Hair Style")
                                hair_color = gr.Dropdown(HAIR_COLOR_OPTIONS, label="Hair Color")
                            height = gr.Dropdown(HEIGHT_OPTIONS, label="Height")
                            pose = gr.Dropdown(POSE_OPTIONS, label="Pose")
                            accessories = gr.Dropdown(ACCESSORIES_OPTIONS, label="Accessories")

                        with gr.Accordion("Environment", open=False):
                            background_preset = gr.Dropdown(list(BACKGROUND_PRESETS), label="Background")
                            background_custom = gr.Textbox(
                                label="Custom Background (optional)",
                                placeholder="Overrides the preset, e.g. a rooftop bar at dusk",
                            )
                            lighting = gr.Dropdown(LIGHTING_OPTIONS, label="Lighting")
                            lens_style = gr.Dropdown(LENS_STYLE_OPTIONS, label="Lens Style")
                            with gr.Row():
                                time_of_day = gr.Dropdown(TIME_OF_DAY_OPTIONS, label="Time of Day")
                                weather = gr.Dropdown(WEATHER_OPTIONS, label="Weather")
                            season = gr.Dropdown(SEASON_OPTIONS, label="Season")
                            camera_angle = gr.Dropdown(CAMERA_ANGLE_OPTIONS, label="Camera Angle")

                        with gr.Row():
                            generate_btn = gr.Button("🎨 Generate Image", variant="primary", size="lg")
                            reset_btn = gr.Button("↩️ Reset Settings", variant="secondary")

                    with gr.Column(scale=1):
                        output_image = gr.Image(label="Generated Image", type="filepath")
                        output_status = gr.Textbox(label="Status", lines=3, interactive=False)
                        output_prompt = gr.Textbox(label="Prompt Used", lines=8, interactive=False)

            with gr.Tab("📸 Gallery"):
                with gr.Row():
                    gallery_count = gr.Textbox(value="Gallery: 0 images", interactive=False, show_label=False)
                    delete_btn = gr.Button("🗑️ Delete Selected", variant="secondary")
                    clear_btn = gr.Button("🧹 Clear Gallery", variant="stop")

                gallery = gr.Gallery(
                    label="Generated Images",
                    show_label=False,
                    columns=4,
                    rows=3,
                    object_fit="contain",
                    height="auto",
                )

        setting_inputs = [
            gender, body_type, age_range, ethnicity, hair_style, hair_color, height, pose, accessories,
            background_preset, background_custom, lighting, lens_style, time_of_day, weather, season,
            camera_angle,
        ]

        def refresh_gallery(state):
            return gallery_view(state, store, max_gallery_items)

        def on_generate(image, state, *values):
            return generate_fashion_image(service, store, image, state, max_gallery_items, *values)

        def on_select(evt: gr.SelectData):
            return evt.index

        def on_delete(state, index):
            return delete_gallery_item(state, index, store, max_gallery_items), None

        def on_clear(state):
            return clear_gallery(state, max_gallery_items)

        demo.load(fn=settings_to_values, inputs=[settings_state], outputs=setting_inputs)
        demo.load(fn=refresh_gallery, inputs=[gallery_state], outputs=[gallery, gallery_count])

        generate_btn.click(
            fn=on_generate,
            inputs=[clothing_image, gallery_state, *setting_inputs],
            outputs=[output_image, output_prompt, output_status, gallery_state, settings_state],
        ).then(
            fn=refresh_gallery,
            inputs=[gallery_state],
            outputs=[gallery, gallery_count],
        )

        reset_btn.click(fn=default_settings, outputs=[settings_state]).then(
            fn=settings_to_values, inputs=[settings_state], outputs=setting_inputs
        )

        gallery.select(fn=on_select, outputs=[selected_index])

        delete_btn.click(
            fn=on_delete,
            inputs=[gallery_state, selected_index],
            outputs=[gallery_state, selected_index],
        ).then(fn=refresh_gallery, inputs=[gallery_state], outputs=[gallery, gallery_count])

        clear_btn.click(fn=on_clear, inputs=[gallery_state], outputs=[gallery_state]).then(
            fn=refresh_gallery, inputs=[gallery_state], outputs=[gallery, gallery_count]
        )

    return demo
