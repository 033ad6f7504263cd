"""
Procedural newspaper placeholder.

Drawn in place of the background image when none is supplied or it failed
to load. Layers are drawn untransformed in canvas space; the frame
renderer applies the zoom/pan/rotation afterwards.
"""

from typing import List, Tuple

from PIL import Image, ImageDraw

from .surface import load_font, parse_color

MASTHEAD = "THE DAILY NEWS"

SEARCH_FILLER = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit.",
    "Sed do eiusmod tempor incididunt ut labore et dolore magna aliqua.",
)

SPIN_PARAGRAPHS = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit. Sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua. Ut enim ad minim veniam, quis nostrud "
    "exercitation ullamco laboris nisi ut aliquip ex ea commodo consequat.",
    "Duis aute irure dolor in reprehenderit in voluptate velit esse cillum dolore eu "
    "fugiat nulla pariatur. Excepteur sint occaecat cupidatat non proident, sunt in "
    "culpa qui officia deserunt mollit anim id est laborum.",
    "Sed ut perspiciatis unde omnis iste natus error sit voluptatem accusantium "
    "doloremque laudantium, totam rem aperiam, eaque ipsa quae ab illo inventore "
    "veritatis et quasi architecto beatae vitae dicta sunt explicabo.",
    "Nemo enim ipsam voluptatem quia voluptas sit aspernatur aut odit aut fugit, sed "
    "quia consequuntur magni dolores eos qui ratione voluptatem sequi nesciunt.",
)


def wrap_words(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> List[str]:
    """Greedy word wrap by measured width."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and draw.textlength(candidate, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def search_placeholder(size: Tuple[int, int], paper: str, ink: str) -> Image.Image:
    """Full-canvas sheet with a centred masthead and two filler lines."""
    width, height = size
    layer = Image.new("RGBA", size, parse_color(paper) + (255,))
    draw = ImageDraw.Draw(layer)
    ink_rgb = parse_color(ink)
    draw.text(
        (width / 2, height / 2 - 50),
        MASTHEAD,
        fill=ink_rgb,
        font=load_font(24),
        anchor="ms",
    )
    body = load_font(18)
    for i, line in enumerate(SEARCH_FILLER):
        draw.text((width / 2, height / 2 + 30 * i), line, fill=ink_rgb, font=body, anchor="ms")
    return layer


def spin_placeholder(size: Tuple[int, int], paper: str, ink: str) -> Image.Image:
    """Sheet covering 80% of the canvas with a masthead and wrapped paragraphs."""
    width, height = size
    sheet_w, sheet_h = width * 0.8, height * 0.8
    left = width / 2 - sheet_w / 2
    top = height / 2 - sheet_h / 2

    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    draw.rectangle((left, top, left + sheet_w, top + sheet_h), fill=parse_color(paper))

    ink_rgb = parse_color(ink)
    x = left + 20
    y = top + 40
    draw.text((x, y), MASTHEAD, fill=ink_rgb, font=load_font(24), anchor="ls")
    y += 40

    body = load_font(14)
    for paragraph in SPIN_PARAGRAPHS:
        for line in wrap_words(draw, paragraph, body, sheet_w - 40):
            draw.text((x, y), line, fill=ink_rgb, font=body, anchor="ls")
            y += 20
        y += 20
    return layer
