from circlevo.problems.targets import (
    blank_candidate,
    load_image_target,
    render_text_target,
)

__all__ = ["blank_candidate", "load_image_target", "render_text_target"]
