"""Prompt templates for the suggestion service.

The trip prompt pins the JSON schema the sanitizer expects and scales the
number and adventurousness of stops with the serendipity level.
"""

SYSTEM_PROMPT = (
    "You are a seasoned road-trip planner who knows real, well-established places "
    "along every major route. Only suggest places that actually exist and can be "
    "found on a map. Respond ONLY with valid JSON. No explanations, no markdown, "
    "no extra text."
)

LANGUAGE_INSTRUCTIONS = {
    "zh": (
        "请务必全程使用简体中文回答。所有地名、景点名称、描述、原因、行程故事都必须使用中文。"
        "如果地名有官方中文译名，请使用中文译名（例如：使用\"清水寺\"而不是\"Kiyomizu-dera\"）。"
    ),
    "en": "Please respond in English. All names, descriptions, and reasons should be in English.",
}

NEARBY_LANGUAGE_INSTRUCTIONS = {
    "zh": "请用中文回答。所有名称、描述、原因都必须使用简体中文。",
    "en": "Please respond in English. All names, descriptions, and reasons should be in English.",
}

SERENDIPITY_RULES = """WAYPOINT GENERATION RULES BASED ON SERENDIPITY LEVEL:

Level 0-2 (Efficiency Focus):
- Suggest 0-1 POI stops maximum
- ONLY practical stops: gas stations, rest areas, fast food
- All stops must be directly on the route

Level 3-4 (Slight Exploration):
- Suggest 1-2 POI stops
- Famous landmarks or popular restaurants within 5km of route

Level 5-6 (Balanced):
- Suggest 2-3 POI stops
- Mix of popular attractions and local favorites
- Small detours (up to 15km) acceptable

Level 7-8 (Adventure):
- Suggest 3-4 POI stops
- Include "hidden gems" and local secrets
- Detours up to 25km acceptable

Level 9-10 (Maximum Serendipity):
- Suggest 4-5 POI stops
- Prioritize unique, off-the-beaten-path experiences
- Detours up to 30km for exceptional places
- Generate 5+ "extra_suggestions" for spontaneous exploration"""

PLACE_SCHEMA = (
    '{ "name": "...", "type": "food", "description": "...", "reason": "...", '
    '"rating": 4.5, "location": "...", "image_keyword": "..." }'
)


def _fmt(coords: tuple[float, float]) -> str:
    return f"[{coords[0]}, {coords[1]}]"


def build_trip_prompt(
    waypoints: list[tuple[str, tuple[float, float]]],
    days: int,
    serendipity_level: int,
    custom_preferences: str | None,
    language: str,
) -> str:
    """Render the trip brief into the prompt sent to the model."""
    chinese = language == "zh"
    names = [name for name, _ in waypoints]
    start_name, start = waypoints[0]
    end_name, end = waypoints[-1]

    stops = "\n".join(f"{i}. {name}" for i, name in enumerate(names, 1))
    intermediate = waypoints[1:-1]
    intermediate_block = ""
    if intermediate:
        lines = "\n".join(f"{i}. {name}: {_fmt(c)}" for i, (name, c) in enumerate(intermediate, 1))
        intermediate_block = f"\nIntermediate stops:\n{lines}\n"

    preferences_block = ""
    if custom_preferences:
        preferences_block = (
            f"\nCUSTOM USER PREFERENCES:\n{custom_preferences}\n\n"
            "IMPORTANT: Prioritize these preferences when selecting waypoints "
            "and crafting the itinerary.\n"
        )

    def zh(text: str) -> str:
        return f" ({text})" if chinese else ""

    return (
        f"{LANGUAGE_INSTRUCTIONS['zh' if chinese else 'en']}\n\n"
        f"Plan a {days}-day road trip through the following locations:\n{stops}\n\n"
        f"Start coordinates: {_fmt(start)}\n"
        f"End coordinates: {_fmt(end)}\n"
        f"{intermediate_block}"
        f"{preferences_block}\n"
        f"SERENDIPITY LEVEL: {serendipity_level}/10\n"
        "(0 = Maximum Efficiency, 10 = Maximum Serendipity)\n\n"
        "CRITICAL GEOGRAPHIC RULES:\n"
        "1. ALL suggested POI waypoints MUST be located between or near the user's specified route\n"
        "2. Waypoints should follow the logical geographic progression through the user's stops\n"
        "3. DO NOT suggest places that require significant backtracking\n\n"
        f"{SERENDIPITY_RULES}\n\n"
        "For each POI stop, provide:\n"
        f"- name: Name of the place{zh('中文名称')}\n"
        '- type: EXACTLY one of: "food", "sight", "shop", or "activity" (lowercase only)\n'
        f"- description: Short description (1 sentence){zh('中文描述')}\n"
        f"- reason: Why this fits serendipity level {serendipity_level}{zh('中文说明')}\n"
        "- rating: A float between 4.0 and 5.0 (e.g. 4.8)\n"
        "- location: A specific address or city name\n"
        "- image_keyword: Visual keyword phrase for image search (keep in English)\n\n"
        "Also provide:\n"
        f'1. 6-8 "start_location_suggestions": Must-visit places in the START city ({start_name}). '
        "Focus on dense city center attractions.\n"
        f'2. 6-8 "end_location_suggestions": Must-visit places in the END city ({end_name}). '
        "Focus on dense city center attractions.\n"
        '3. 5-8 "extra_suggestions": Interesting places NEAR the route (but not on it).\n'
        '4. 3-5 "route_waypoints": Specific, interesting stops DIRECTLY ON the driving route '
        "between waypoints.\n\n"
        'Finally, generate a "story_itinerary" in Markdown format:\n'
        "- Warm, engaging, travel-blogger style narrative\n"
        "- Organize by day (Day 1, Day 2, etc.)\n"
        "- Mention the user's specified stops AND your suggested POI stops\n"
        "- Add pro tips and vibe checks\n"
        "- When describing the start and end cities, mention the specific places from your suggestions list\n\n"
        "Return ONLY valid JSON in this format:\n"
        "{\n"
        f'  "waypoints": [{PLACE_SCHEMA}],\n'
        f'  "start_location_suggestions": [{PLACE_SCHEMA}],\n'
        f'  "end_location_suggestions": [{PLACE_SCHEMA}],\n'
        f'  "extra_suggestions": [{PLACE_SCHEMA}],\n'
        f'  "route_waypoints": [{PLACE_SCHEMA}],\n'
        '  "story_itinerary": "# Your Trip...\\n\\n## Day 1\\n..."\n'
        "}"
    )


def build_nearby_prompt(location: str, coordinates: tuple[float, float], language: str) -> str:
    chinese = language == "zh"
    name_hint = " (只需要名称，不要地址)" if chinese else " (name only, no address)"
    description_hint = " (中文描述)" if chinese else ""
    return (
        f"{NEARBY_LANGUAGE_INSTRUCTIONS['zh' if chinese else 'en']}\n\n"
        f'Find 3-5 REAL, WELL-KNOWN places near "{location}".\n'
        f"Main location coordinates: {_fmt(coordinates)}\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "1. These must be REAL places that actually exist and can be found on a map\n"
        "2. Use the EXACT official name as it appears on maps\n"
        "3. All places must be within 3km of the main location\n"
        "4. Provide diverse types (at least one food, one sight)\n"
        "5. DO NOT make up places - only suggest well-known, established locations\n\n"
        "For each place, provide ONLY:\n"
        f"- name: EXACT official place name ONLY{name_hint}\n"
        '- type: MUST be EXACTLY one of: "food", "sight", "shop", or "activity" (lowercase only)\n'
        f"- description: Brief 1-sentence description{description_hint}\n"
        "- rating: Realistic rating between 4.0 and 5.0 (e.g. 4.6)\n"
        "- review_count: Number of reviews (100-5000)\n"
        "- image_keyword: Visual search keyword for image (keep in English)\n\n"
        "DO NOT include coordinates or full addresses.\n\n"
        "Return ONLY valid JSON:\n"
        '{"nearby_places": [{"name": "Place Name Only", "type": "food", "description": "...", '
        '"rating": 4.5, "review_count": 1200, "image_keyword": "..."}]}'
    )
