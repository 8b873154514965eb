# course_catalog.py
"""
Course detail pages rendered from the static JSON catalog.
"""

import json
import logging
import math
import os
import re
from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger("course_catalog")
logger.setLevel(os.getenv("PAYMENTS_LOG_LEVEL", "INFO").upper())

DEFAULT_COURSE_ID = 1
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


class CatalogError(Exception):
    pass


def parse_course_id(raw: Optional[str]) -> int:
    """
    Leading integer of the query value, like JS parseInt.

    Missing, unparsable or zero ids fall back to DEFAULT_COURSE_ID.
    """
    if raw is None:
        return DEFAULT_COURSE_ID
    m = _LEADING_INT_RE.match(str(raw))
    if not m:
        return DEFAULT_COURSE_ID
    return int(m.group(1)) or DEFAULT_COURSE_ID


def load_catalog(path: Union[str, Path]) -> List[Dict[str, Any]]:
    try:
        with open(path, encoding="utf-8") as fh:
            courses = json.load(fh)
    except (OSError, ValueError) as e:
        logger.error("Error loading course catalog %s: %s", path, e)
        raise CatalogError(f"Error loading course catalog: {e}") from e
    if not isinstance(courses, list):
        raise CatalogError("Course catalog must be a JSON array")
    return courses


def find_course(courses: List[Dict[str, Any]], course_id: int) -> Optional[Dict[str, Any]]:
    return next((c for c in courses if c.get("id") == course_id), None)


def star_rating(rating: float) -> str:
    full = max(0, min(5, math.floor(rating or 0)))
    return "★" * full + "☆" * (5 - full)


def _list_items(values) -> str:
    return "".join(f"<li>{escape(str(v))}</li>" for v in values or [])


def _curriculum(syllabus) -> str:
    parts = []
    for index, section in enumerate(syllabus or []):
        display = "block" if index == 0 else "none"
        parts.append(
            '<div class="curriculum-item">'
            '<div class="curriculum-header">'
            f'<span class="curriculum-title">{escape(str(section.get("section", "")))}</span>'
            '<i class="fas fa-chevron-down"></i>'
            "</div>"
            f'<ul class="curriculum-topics" style="display: {display};">'
            f"{_list_items(section.get('topics'))}"
            "</ul>"
            "</div>"
        )
    return "".join(parts)


def course_view(course: Dict[str, Any], site_name: str) -> Dict[str, str]:
    """Text and HTML fragments for each field on the detail page."""
    rating = course.get("rating", 0)
    return {
        "title": f"{course.get('name', '')} | {site_name}",
        "courseTitle": escape(str(course.get("name", ""))),
        "courseShortDesc": escape(str(course.get("shortDesc", ""))),
        "courseImage": escape(str(course.get("image", "")), quote=True),
        "courseInstructor": escape(str(course.get("instructor", ""))),
        "courseRating": f"{star_rating(rating)} {escape(str(rating))}/5",
        "courseReviews": f"{escape(str(course.get('reviews', 0)))} reviews",
        "courseDuration": escape(str(course.get("duration", ""))),
        "priceBadge": escape(str(course.get("price", ""))),
        "courseDescription": escape(str(course.get("description", ""))),
        "learnList": _list_items(course.get("highlights")),
        "curriculumList": _curriculum(course.get("syllabus")),
        "requirementsList": _list_items(course.get("requirements")),
    }


def render_course_detail(course: Dict[str, Any], site_name: str) -> str:
    v = course_view(course, site_name)
    return f"""<!doctype html>
<html>
  <head>
    <meta charset="utf-8"/>
    <title>{escape(v["title"])}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1"/>
  </head>
  <body>
    <section class="course-hero">
      <h1 id="courseTitle">{v["courseTitle"]}</h1>
      <p id="courseShortDesc">{v["courseShortDesc"]}</p>
      <img id="courseImage" src="{v["courseImage"]}" alt="{v["courseTitle"]}"/>
      <p>Instructor: <span id="courseInstructor">{v["courseInstructor"]}</span></p>
      <p><span id="courseRating">{v["courseRating"]}</span> &middot; <span id="courseReviews">{v["courseReviews"]}</span></p>
      <p>Duration: <span id="courseDuration">{v["courseDuration"]}</span></p>
      <span id="priceBadge" class="price-badge">{v["priceBadge"]}</span>
    </section>
    <section>
      <h2>About this course</h2>
      <p id="courseDescription">{v["courseDescription"]}</p>
    </section>
    <section>
      <h2>What you'll learn</h2>
      <ul id="learnList">{v["learnList"]}</ul>
    </section>
    <section>
      <h2>Curriculum</h2>
      <div id="curriculumList">{v["curriculumList"]}</div>
    </section>
    <section>
      <h2>Requirements</h2>
      <ul id="requirementsList">{v["requirementsList"]}</ul>
    </section>
  </body>
</html>
"""


def _message_page(text: str) -> str:
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\"/></head><body>"
        '<div style="text-align: center; padding: 5rem; font-size: 1.5rem;">'
        f'{text} <a href="/courses">Back to courses</a></div>'
        "</body></html>"
    )


def render_not_found() -> str:
    return _message_page("Course not found.")


def render_load_error() -> str:
    return _message_page("Error loading course.")
