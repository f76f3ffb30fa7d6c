"""Pillow-based stand-ins for the bubble renderer and reaction-card service.

These draw a readable, themed approximation of a messaging screen: good
enough for previews, tests and for jobs run without the production
renderer. Missing image and avatar assets become grey boxes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Final

from PIL import Image, ImageDraw, ImageFont

from textvid.config import RGB, Theme, VideoConfig
from textvid.domain import ImageMessage, ReactionKind, RenderedFrame, ScriptSettings
from textvid.render.contracts import (
    BubbleSpec,
    ReactionCard,
    ReactionCardError,
    ThreadHeader,
)
from textvid.script.text import redaction_runs
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

FONT_SIZE: Final[int] = 44
HEADER_FONT_SIZE: Final[int] = 40
LINE_SPACING: Final[int] = 10
BUBBLE_PADDING: Final[int] = 28
BUBBLE_GAP: Final[int] = 14
BUBBLE_RADIUS: Final[int] = 38
HEADER_HEIGHT: Final[int] = 220
AVATAR_SIZE: Final[int] = 110
IMAGE_BOX: Final[tuple[int, int]] = (520, 520)
MISSING_ASSET_FILL: Final[RGB] = (128, 128, 128)
RIZZ_PARTIAL_REVEAL: Final[float] = 0.65


def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


class PillowChatRenderer:
    """Draws themed chat windows onto a chroma-key canvas."""

    def __init__(self, theme: Theme, video: VideoConfig, asset_dir: Path) -> None:
        self.theme = theme
        self.video = video
        self.asset_dir = asset_dir
        self._font = _font(FONT_SIZE)
        self._header_font = _font(HEADER_FONT_SIZE)

    # Public contract

    def render_window(
        self,
        header: ThreadHeader | None,
        bubbles: Sequence[BubbleSpec],
        settings: ScriptSettings,
    ) -> RenderedFrame:
        panel = self._draw_panel(header, bubbles)
        return self._on_canvas(panel, settings.corner_radius)

    def render_context(
        self, bubbles: Sequence[BubbleSpec], settings: ScriptSettings
    ) -> RenderedFrame:
        del settings
        panel = self._draw_panel(None, bubbles)
        return RenderedFrame(handle=panel, width=panel.width, height=panel.height)

    def placeholder(self, label: str = "") -> RenderedFrame:
        canvas = Image.new(
            "RGB", (self.video.width, self.video.height), self.video.background
        )
        if label:
            draw = ImageDraw.Draw(canvas)
            draw.text(
                (self.video.width // 2, self.video.height // 2),
                label,
                font=self._header_font,
                fill=self.theme.name_fill,
                anchor="mm",
            )
        return RenderedFrame(handle=canvas, width=canvas.width, height=canvas.height)

    def save(self, frame: RenderedFrame, path: Path, *, quality: int = 95) -> Path:
        image = frame.handle
        if not isinstance(image, Image.Image):
            raise TypeError(f"Cannot save frame handle of type {type(image).__name__}.")
        if image.size != (self.video.width, self.video.height):
            image = self._on_canvas(image, 0).handle
        path.parent.mkdir(parents=True, exist_ok=True)
        image.convert("RGB").save(path, "JPEG", quality=quality)
        return path

    def render_card(
        self, title: str, text: str, context: RenderedFrame, *, accent: RGB
    ) -> RenderedFrame:
        """Draws a reaction card below the context strip."""
        width = self.video.chat_width
        lines = self._wrap(text, width - 2 * BUBBLE_PADDING)
        line_height = self._line_height()
        card_height = (
            HEADER_FONT_SIZE + 3 * BUBBLE_PADDING + len(lines) * line_height
        )
        context_image = context.handle
        context_height = (
            context_image.height if isinstance(context_image, Image.Image) else 0
        )
        panel = Image.new(
            "RGB", (width, context_height + card_height), self.theme.chat_background
        )
        if isinstance(context_image, Image.Image):
            panel.paste(context_image.convert("RGB"), (0, 0))
        draw = ImageDraw.Draw(panel)
        top = context_height
        draw.rounded_rectangle(
            (0, top, width - 1, top + card_height - 1),
            radius=BUBBLE_RADIUS,
            fill=self.theme.header_background,
            outline=accent,
            width=6,
        )
        draw.text(
            (BUBBLE_PADDING, top + BUBBLE_PADDING),
            title,
            font=self._header_font,
            fill=accent,
        )
        y = top + 2 * BUBBLE_PADDING + HEADER_FONT_SIZE
        for line in lines:
            draw.text((BUBBLE_PADDING, y), line, font=self._font, fill=self.theme.name_fill)
            y += line_height
        return self._on_canvas(panel, 0)

    # Layout helpers

    def _line_height(self) -> int:
        return FONT_SIZE + LINE_SPACING

    def _text_width(self, text: str) -> int:
        left, _top, right, _bottom = self._font.getbbox(text)
        return int(right - left)

    def _wrap(self, text: str, max_width: int) -> list[str]:
        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            current = ""
            for word in paragraph.split(" "):
                candidate = f"{current} {word}" if current else word
                if current and self._text_width(candidate) > max_width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def _load_asset(self, name: str, box: tuple[int, int]) -> Image.Image:
        path = self.asset_dir / name
        try:
            with Image.open(path) as source:
                image = source.convert("RGB")
        except (FileNotFoundError, OSError) as err:
            logger.warning("Asset %s unavailable (%s); using placeholder box.", path, err)
            return Image.new("RGB", box, MISSING_ASSET_FILL)
        image.thumbnail(box)
        return image

    def _bubble_image(self, bubble: BubbleSpec) -> Image.Image:
        theme = self.theme
        fill = theme.bubble_outgoing if bubble.outgoing else theme.bubble_incoming
        text_fill = theme.outgoing_text if bubble.outgoing else theme.incoming_text
        max_text_width = int(self.video.chat_width * 0.7)

        if isinstance(bubble.message, ImageMessage):
            picture = self._load_asset(bubble.message.image_ref, IMAGE_BOX)
            image = Image.new("RGB", picture.size, theme.chat_background)
            image.paste(picture, (0, 0))
            return image

        # Redacted runs are drawn as solid bars over the text position.
        plain = "".join(chunk for chunk, _ in redaction_runs(bubble.message.display_text))
        lines = self._wrap(plain, max_text_width)
        line_height = self._line_height()
        text_width = max((self._text_width(line) for line in lines), default=0)
        width = text_width + 2 * BUBBLE_PADDING
        height = len(lines) * line_height + 2 * BUBBLE_PADDING - LINE_SPACING
        image = Image.new("RGB", (width, height), theme.chat_background)
        draw = ImageDraw.Draw(image)
        draw.rounded_rectangle(
            (0, 0, width - 1, height - 1), radius=BUBBLE_RADIUS, fill=fill
        )
        if bubble.show_tail:
            tail_x = width - 1 if bubble.outgoing else 0
            direction = 1 if bubble.outgoing else -1
            draw.polygon(
                [
                    (tail_x - direction * 30, height - 1),
                    (tail_x + direction * 12, height - 1),
                    (tail_x - direction * 4, height - 30),
                ],
                fill=fill,
            )
        y = BUBBLE_PADDING
        for line in lines:
            draw.text((BUBBLE_PADDING, y), line, font=self._font, fill=text_fill)
            y += line_height
        self._draw_redactions(draw, bubble.message.display_text, lines, text_fill)
        return image

    def _draw_redactions(
        self, draw: ImageDraw.ImageDraw, text: str, lines: list[str], fill: RGB
    ) -> None:
        line_height = self._line_height()
        for chunk, redacted in redaction_runs(text):
            if not redacted or not chunk.strip():
                continue
            for index, line in enumerate(lines):
                offset = line.find(chunk)
                if offset == -1:
                    continue
                x0 = BUBBLE_PADDING + self._text_width(line[:offset])
                x1 = x0 + self._text_width(chunk)
                y0 = BUBBLE_PADDING + index * line_height
                draw.rectangle((x0, y0, x1, y0 + FONT_SIZE), fill=fill)
                break

    def _draw_header(self, panel: Image.Image, header: ThreadHeader) -> None:
        theme = self.theme
        draw = ImageDraw.Draw(panel)
        draw.rectangle((0, 0, panel.width, HEADER_HEIGHT), fill=theme.header_background)
        avatar_left = (panel.width - AVATAR_SIZE) // 2
        if header.avatar_ref:
            avatar = self._load_asset(header.avatar_ref, (AVATAR_SIZE, AVATAR_SIZE))
            mask = Image.new("L", avatar.size, 0)
            ImageDraw.Draw(mask).ellipse((0, 0, avatar.width - 1, avatar.height - 1), fill=255)
            panel.paste(avatar, (avatar_left, 24), mask)
        else:
            draw.ellipse(
                (avatar_left, 24, avatar_left + AVATAR_SIZE, 24 + AVATAR_SIZE),
                fill=MISSING_ASSET_FILL,
            )
            initial = header.contact_name[:1].upper()
            draw.text(
                (panel.width // 2, 24 + AVATAR_SIZE // 2),
                initial,
                font=self._header_font,
                fill=(255, 255, 255),
                anchor="mm",
            )
        draw.text(
            (panel.width // 2, 24 + AVATAR_SIZE + 40),
            header.contact_name,
            font=self._header_font,
            fill=theme.name_fill,
            anchor="mm",
        )
        draw.text(
            (BUBBLE_PADDING, 24),
            f"< {header.unread_count}",
            font=self._header_font,
            fill=theme.bubble_outgoing,
        )

    def _draw_panel(
        self,
        header: ThreadHeader | None,
        bubbles: Sequence[BubbleSpec],
    ) -> Image.Image:
        width = self.video.chat_width
        rendered = [(bubble, self._bubble_image(bubble)) for bubble in bubbles]
        top = HEADER_HEIGHT + BUBBLE_GAP if header is not None else BUBBLE_GAP
        height = top + sum(image.height + BUBBLE_GAP for _, image in rendered)
        height = max(height, BUBBLE_GAP * 2)
        panel = Image.new("RGB", (width, height), self.theme.chat_background)
        if header is not None:
            self._draw_header(panel, header)
        y = top
        for bubble, image in rendered:
            x = width - image.width - BUBBLE_PADDING if bubble.outgoing else BUBBLE_PADDING
            panel.paste(image, (max(0, x), y))
            y += image.height + BUBBLE_GAP
        return panel

    def _on_canvas(self, panel: Image.Image, corner_radius: int) -> RenderedFrame:
        canvas = Image.new(
            "RGB", (self.video.width, self.video.height), self.video.background
        )
        if panel.width > self.video.width or panel.height > self.video.height:
            panel = panel.copy()
            panel.thumbnail((self.video.width, self.video.height))
        left = (self.video.width - panel.width) // 2
        top = (self.video.height - panel.height) // 2
        mask = Image.new("L", panel.size, 0)
        ImageDraw.Draw(mask).rounded_rectangle(
            (0, 0, panel.width - 1, panel.height - 1), radius=corner_radius, fill=255
        )
        canvas.paste(panel, (left, top), mask)
        return RenderedFrame(handle=canvas, width=canvas.width, height=canvas.height)


class PlaceholderReactionCards:
    """Local reaction-card generator built on ``PillowChatRenderer``.

    Plug interactions yield one card. Rizz interactions yield a partially
    revealed card for the intro and the full card for the reply.
    """

    def __init__(self, renderer: PillowChatRenderer) -> None:
        self._renderer = renderer

    def generate(
        self,
        kind: ReactionKind,
        reply_text: str,
        context: RenderedFrame,
        theme: Theme,
    ) -> ReactionCard:
        if not reply_text.strip():
            raise ReactionCardError(f"Empty {kind} reply text.")
        accent = theme.bubble_outgoing
        if kind == "plug":
            card = self._renderer.render_card("Plug AI", reply_text, context, accent=accent)
            return ReactionCard(intro_frame=card)
        cutoff = max(1, int(len(reply_text) * RIZZ_PARTIAL_REVEAL))
        partial = self._renderer.render_card(
            "Rizz AI", reply_text[:cutoff].rstrip() + "...", context, accent=accent
        )
        full = self._renderer.render_card("Rizz AI", reply_text, context, accent=accent)
        return ReactionCard(intro_frame=partial, reply_frame=full)
