ALLOWED_SECTIONS = (
    "personalInfo",
    "contact",
    "summary",
    "experience",
    "education",
    "skills",
    "projects",
    "certifications",
    "achievements",
    "languages",
    "courses",
    "publications",
    "patents",
    "links",
    "interests",
    "videoProfile",
)

# Sections counted towards the completion percentage.
COMPLETION_SECTIONS = (
    "personalInfo",
    "contact",
    "summary",
    "experience",
    "education",
    "skills",
)


def calculate_completion(profile: dict) -> int:
    completed = 0
    for section in COMPLETION_SECTIONS:
        data = profile.get(section)
        if section == "personalInfo":
            if isinstance(data, dict) and data.get("fullName") and data.get("email"):
                completed += 1
        elif section == "contact":
            if isinstance(data, dict) and (data.get("phone") or data.get("email")):
                completed += 1
        elif section == "summary":
            if isinstance(data, str) and len(data) > 20:
                completed += 1
        elif isinstance(data, list) and data:
            completed += 1
    return round(completed / len(COMPLETION_SECTIONS) * 100)


def _nested(profile: dict, section: str, key: str):
    data = profile.get(section)
    return data.get(key) if isinstance(data, dict) else None


def missing_sections(profile: dict) -> list:
    missing = []
    if not _nested(profile, "personalInfo", "firstName"):
        missing.append("Personal Information")
    if not _nested(profile, "contact", "email"):
        missing.append("Contact Information")
    if not profile.get("summary"):
        missing.append("Professional Summary")
    if not profile.get("experience"):
        missing.append("Work Experience")
    if not profile.get("education"):
        missing.append("Education")
    if not profile.get("skills"):
        missing.append("Skills")
    return missing
