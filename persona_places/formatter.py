from datetime import date

from persona_places.models import Location, Persona


def format_persona(persona: Persona) -> str:
    sections = [f"## {persona.name} (@{persona.handle})\n", persona.bio + "\n"]
    sections.append(f"- **Traits**: {', '.join(persona.traits)}")
    sections.append(f"- **Interests**: {', '.join(persona.interests)}")
    if persona.profile_image_url:
        sections.append(f"- **Photo**: {persona.profile_image_url}")
    return "\n".join(sections) + "\n"


def format_report(persona: Persona, locations: list[Location], city: str = "Toronto") -> str:
    """Format a persona and its recommendations into a Markdown report string."""
    sections = [f"# Places for @{persona.handle} in {city}\n\n*Generated {date.today()}*\n"]
    sections.append(format_persona(persona))

    if locations:
        sections.append("## Recommendations\n")
        sections.append("| # | Place | Category | Rating | Why |")
        sections.append("|---|---|---|---|---|")
        for i, loc in enumerate(locations, 1):
            name = f"[{loc.name}]({loc.website})" if loc.website else loc.name
            rating = f"{loc.rating:.1f}" if loc.rating is not None else "-"
            sections.append(f"| {i} | {name} | {loc.category.value} | {rating} | {loc.description} |")
        sections.append("")
        sections.append("**Addresses:**\n")
        for loc in locations:
            sections.append(f"- {loc.name}: {loc.address} ({loc.coordinates.lat:.4f}, {loc.coordinates.lng:.4f})")
        sections.append("")

    return "\n".join(sections)
