"""PDF rendering of plan documents with matplotlib's PDF backend."""

import io

from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.figure import Figure

from .plan_document import PlanDocument

# A4 portrait, inches
PAGE_SIZE = (8.27, 11.69)
LEFT = 0.08
TOP = 0.94
BOTTOM = 0.06


class PlanRenderer:
    """Renders a ``PlanDocument`` to PDF bytes. Blocking; run it off the loop.

    Uses ``Figure`` directly rather than pyplot so rendering is safe from
    worker threads.
    """

    def __init__(self, font: str = "DejaVu Sans", line_height: float = 0.022):
        self.font = font
        self.line_height = line_height

    def render(self, document: PlanDocument) -> bytes:
        lines: list[tuple[str, dict]] = [(document.title, {"fontsize": 16, "fontweight": "bold"})]
        lines += [(line, {"fontsize": 10}) for line in document.header_lines]
        lines.append(("", {}))

        for day in document.days:
            lines.append((day.heading, {"fontsize": 12, "fontweight": "bold", "backgroundcolor": "#ebebeb"}))
            lines += [(f"    {row}", {"fontsize": 10}) for row in day.rows]
            lines.append(("", {}))

        lines += [(line, {"fontsize": 9, "fontstyle": "italic"}) for line in document.footer_lines]

        buffer = io.BytesIO()
        with PdfPages(buffer) as pdf:
            for page in self._paginate(lines):
                fig = Figure(figsize=PAGE_SIZE)
                y = TOP
                for text, style in page:
                    if text:
                        fig.text(LEFT, y, text, family=self.font, va="top", **style)
                    y -= self.line_height * (1.5 if style.get("fontsize", 10) > 10 else 1.0)
                pdf.savefig(fig)
        return buffer.getvalue()

    def _paginate(self, lines: list[tuple[str, dict]]) -> list[list[tuple[str, dict]]]:
        per_page = int((TOP - BOTTOM) / (self.line_height * 1.5))
        pages = [lines[i:i + per_page] for i in range(0, len(lines), per_page)]
        return pages or [[]]
