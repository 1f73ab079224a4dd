"""Resume section segmentation, contact pre-scan and date parsing.

Deterministic helpers used around the oracle: section detection backs up an
empty ``detectedSections``, the contact pre-scan gives the retry prompt
something concrete to check against, and ``parse_year_month`` feeds the
duration backfill.
"""

import re
from datetime import datetime

# Section header patterns and their canonical names
SECTION_PATTERNS: dict[str, list[str]] = {
    "experience": [
        r"(?:work|professional|employment)\s*(?:experience|history)",
        r"experience",
        r"career\s*(?:history|summary|path)",
        r"(?:positions?\s*held|roles)",
    ],
    "education": [
        r"education(?:al)?\s*(?:background|qualifications|history)?",
        r"academic\s*(?:background|qualifications)",
    ],
    "skills": [
        r"(?:technical|core|key|professional)?\s*skills",
        r"(?:technical|core)?\s*(?:competencies|proficiencies|expertise)",
        r"technologies",
        r"(?:technical\s+)?(?:stack|toolkit|tooling)",
    ],
    "summary": [
        r"(?:professional|executive|career)?\s*summary",
        r"(?:career|professional)?\s*objective",
        r"profile",
        r"about\s*me",
    ],
    "projects": [
        r"(?:key|notable|selected|personal)?\s*projects",
        r"portfolio",
    ],
    "certifications": [
        r"certific(?:ations?|ates?)",
        r"licen[sc]es?\s*(?:&|and)?\s*certific(?:ations?|ates?)",
    ],
    "languages": [
        r"(?:spoken\s+)?languages",
        r"language\s*(?:skills|proficienc(?:y|ies))",
    ],
    "achievements": [
        r"(?:key\s+)?achievements?",
        r"(?:awards?|honors?|accomplishments)",
    ],
}

# Compile all patterns into a single regex per section
_COMPILED: dict[str, re.Pattern] = {}
for section, patterns in SECTION_PATTERNS.items():
    combined = "|".join(patterns)
    _COMPILED[section] = re.compile(
        rf"^\s*(?:{combined})\s*:?\s*$", re.IGNORECASE | re.MULTILINE
    )

# Contact info patterns
EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
PHONE_RE = re.compile(r"\+?[\d\s\-().]{7,15}\d")
LINKEDIN_RE = re.compile(r"linkedin\.com/in/[\w-]+", re.IGNORECASE)
GITHUB_RE = re.compile(r"github\.com/[\w-]+", re.IGNORECASE)

PERSONAL_INFO_SECTION = "personal_information"


def parse_sections(text: str) -> dict[str, str]:
    """Split resume text into named sections.

    Returns a dict mapping section name -> section text content.
    Unmatched text at the top goes into 'header'.
    """
    lines = text.split("\n")
    sections: dict[str, str] = {}
    current_section = "header"
    current_lines: list[str] = []

    for line in lines:
        matched_section = None
        stripped = line.strip()

        # Skip empty lines for header detection, but keep them in content
        if stripped:
            for section_name, pattern in _COMPILED.items():
                if pattern.match(stripped):
                    matched_section = section_name
                    break

        if matched_section:
            # Save previous section
            if current_lines:
                sections[current_section] = "\n".join(current_lines).strip()
            current_section = matched_section
            current_lines = []
        else:
            current_lines.append(line)

    # Save last section
    if current_lines:
        sections[current_section] = "\n".join(current_lines).strip()

    return sections


def extract_contact_info(text: str) -> dict[str, str | None]:
    """Regex pre-scan for contact details."""
    email_match = EMAIL_RE.search(text)
    phone_match = PHONE_RE.search(text)
    linkedin_match = LINKEDIN_RE.search(text)
    github_match = GITHUB_RE.search(text)

    return {
        "email": email_match.group() if email_match else None,
        "phone": phone_match.group().strip() if phone_match else None,
        "linkedin": linkedin_match.group() if linkedin_match else None,
        "github": github_match.group() if github_match else None,
    }


def detect_sections(text: str) -> list[str]:
    """Canonical names of the sections present in ``text``, in document order.

    The top block counts as ``personal_information`` when it holds an email
    or phone number.
    """
    sections = parse_sections(text)
    found: list[str] = []
    header = sections.get("header", "")
    if header and (EMAIL_RE.search(header) or PHONE_RE.search(header)):
        found.append(PERSONAL_INFO_SECTION)
    found.extend(name for name in sections if name != "header")
    return found


# ---------------------------------------------------------------------------
# Date parsing
# ---------------------------------------------------------------------------

_MONTH_MAP = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "sept": 9,
    "september": 9, "oct": 10, "october": 10, "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

ONGOING_WORDS = {"present", "current", "now", "ongoing", "today"}

# 2019-01, 2019-01-15, 2019/01
_ISO_RE = re.compile(r"^(\d{4})[-/](\d{1,2})(?:[-/]\d{1,2})?$")
# 01/2019, 1-2019
_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})[-/](\d{4})$")


def _valid(year: int, month: int) -> tuple[int, int] | None:
    if 1900 <= year <= 2100 and 1 <= month <= 12:
        return year, month
    return None


def parse_year_month(
    date_str: str | None, now: datetime | None = None
) -> tuple[int, int] | None:
    """Parse a resume date into (year, month).

    Accepts YYYY-MM, YYYY-MM-DD, YYYY, MM/YYYY and "Month YYYY". A bare year
    maps to January. "Present"/"Current" map to ``now``. Returns None when
    the string cannot be read.
    """
    if not date_str:
        return None
    date_str = date_str.strip().rstrip(".")
    if date_str.lower() in ONGOING_WORDS:
        now = now or datetime.now()
        return now.year, now.month

    match = _ISO_RE.match(date_str)
    if match:
        return _valid(int(match.group(1)), int(match.group(2)))

    match = _MONTH_YEAR_RE.match(date_str)
    if match:
        return _valid(int(match.group(2)), int(match.group(1)))

    # Try "Month Year" format
    parts = date_str.replace(",", " ").split()
    if len(parts) == 2:
        month_str = parts[0].lower().rstrip(".")
        if month_str in _MONTH_MAP:
            try:
                return _valid(int(parts[1]), _MONTH_MAP[month_str])
            except ValueError:
                return None

    # Try bare year
    try:
        return _valid(int(date_str), 1)
    except ValueError:
        return None


def months_between(start: tuple[int, int], end: tuple[int, int]) -> int:
    """Whole months from start to end, ignoring day of month."""
    return (end[0] - start[0]) * 12 + (end[1] - start[1])
