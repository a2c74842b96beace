"""
Rendering and writing of crawl results.
"""

import json
from pathlib import Path
from typing import List, Optional
from xml.dom import minidom
from xml.etree import ElementTree

from site_crawler.utils.logging import get_logger
from site_crawler.utils.errors import OutputError, ValidationError
from site_crawler.concurrent.models import CrawlReport, CrawlResult


logger = get_logger(__name__)

OUTPUT_FORMATS = ("text", "json", "xml")

FILE_EXTENSIONS = {
    "json": ".json",
    "xml": ".xml",
}


class ReportGenerator:
    """Renders result records as plain text, JSON or XML."""

    def __init__(self, output_format: str = "text"):
        """
        Initialize report generator.

        Args:
            output_format: One of ``text``, ``json`` or ``xml``

        Raises:
            ValidationError: If the format is unsupported
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValidationError(
                f"unsupported output format [{output_format}]",
                {"supported": list(OUTPUT_FORMATS)}
            )
        self.output_format = output_format

    def render(self, results: List[CrawlResult]) -> str:
        if self.output_format == "json":
            return self._render_json(results)
        if self.output_format == "xml":
            return self._render_xml(results)
        return self._render_text(results)

    def _render_text(self, results: List[CrawlResult]) -> str:
        lines = []
        for result in results:
            lines.append(result.url)
            for link in result.links:
                lines.append(f"\t{link}")
        return "\n".join(lines) + ("\n" if lines else "")

    def _render_json(self, results: List[CrawlResult]) -> str:
        return json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False)

    def _render_xml(self, results: List[CrawlResult]) -> str:
        root = ElementTree.Element("results")
        for result in results:
            attrs = {"url": result.url, "status": str(result.status_code)}
            if result.error:
                attrs["error"] = result.error
            attrs["linkCount"] = str(result.link_count)
            element = ElementTree.SubElement(root, "crawlerResult", attrs)
            for link in result.links:
                ElementTree.SubElement(element, "link").text = link

        raw = ElementTree.tostring(root, encoding="unicode")
        return minidom.parseString(raw).toprettyxml(indent="  ")

    def output_path(self, output_file: str) -> Path:
        """Append the format's extension to ``output_file`` when missing."""
        extension = FILE_EXTENSIONS.get(self.output_format)
        if extension and not output_file.endswith(extension):
            output_file += extension
        return Path(output_file)

    def write(self, report: CrawlReport, output_file: Optional[str] = None) -> Optional[Path]:
        """
        Print the rendered results, or write them to a file.

        Args:
            report: Finished crawl report
            output_file: Destination path; stdout when omitted

        Returns:
            Path written, or None when printed

        Raises:
            OutputError: If the file cannot be written
        """
        content = self.render(report.results)

        if not output_file:
            print(content)
            return None

        path = self.output_path(output_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise OutputError(f"failed to write results to {path}: {e}", {"path": str(path)})

        logger.debug(f"wrote results to file filename={path}")
        return path
