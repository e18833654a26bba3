"""
Storyreel Stage Prompts

Centralized prompt templates for every pipeline stage and regeneration call.
Templates use str.format placeholders; literal braces are doubled.
"""


class StagePromptLibrary:
    """
    Library of all stage prompts.

    Provides centralized access to prompt templates for:
    - Story chat and extraction
    - Scene planning and shot generation
    - Style / character / background / item extraction
    - Frame and animation prompts
    - Single-record regeneration
    """

    # ==========================================================================
    # STORY CHAT
    # ==========================================================================

    STORY_CHAT_SYSTEM = (
        "You are a creative story development assistant helping users create compelling "
        "stories for animated videos. Help users brainstorm and develop their story ideas. "
        "Ask clarifying questions about characters, setting, conflict, and resolution. "
        "When the user seems satisfied, provide a complete, polished story. Do NOT use "
        "markdown formatting like **, ##, or * symbols. Write in plain prose."
    )

    STORY_CHAT_EMPTY_REPLY = "Sorry, I encountered an error."
    STORY_CHAT_ERROR_REPLY = "Sorry, I encountered an error. Please check your API key in settings."

    STORY_EXTRACT_SYSTEM = (
        "Based on the conversation below, write the COMPLETE story ready for animation. "
        "Include detailed character descriptions, settings, dialogue, and emotional beats. "
        "Do NOT use markdown. Write 400-800+ words."
    )

    STORY_EXTRACT_USER = "Story conversation:\n\n{conversation}\n\nWrite the complete story."

    # ==========================================================================
    # SCENE PLANNING
    # ==========================================================================

    ANALYSIS_SYSTEM = (
        'Analyze this story and output ONLY valid JSON: {{"recommendedDuration": [number 30-180], '
        '"recommendedAudio": "[none/narration/dialogue/both]", "reasoning": "brief"}}'
    )

    ANALYSIS_USER = "Analyze:\n\n{script}"

    SCENE_PLAN_SYSTEM = """Create scene breakdown for EXACTLY {duration} seconds. Output ONLY valid JSON:
{{"scenes": [{{"scene": 1, "type": "FAST/MEDIUM/SLOW/MONTAGE", "location": "location", "duration": 8, "summary": "what happens", "audio_mode": "per_shot or scene_level", "story_beat": "SETUP/CONFLICT/CLIMAX/RESOLUTION", "target_shots": 3}}], "totalDuration": {duration}, "audioType": "{audio_type}", "totalTargetShots": 12}}

SHOT COUNT: Total = duration ÷ 2.5. MONTAGE: 0.5-1.5s/shot. FAST: 1.5-2s. MEDIUM: 2-3s. SLOW: 3-5s.
STORY STRUCTURE: SETUP (15-20%), CONFLICT (25-35%), CLIMAX (25-35%), RESOLUTION (15-25%)."""

    SCENE_PLAN_USER = "TARGET: {duration}s, AUDIO: {audio_type}\n\nSTORY:\n{script}"

    # ==========================================================================
    # SHOTS
    # ==========================================================================

    SHOTS_SYSTEM = """Generate shots. Format:
SCENE [n]
SHOT [n]
FRAMING: [ECU/CU/MCU/MS/MWS/WS/EWS/OTS/POV/TWO-SHOT]
TIMING: [seconds]
BEAT: [goal]
DESCRIPTION: [action]{audio_instructions}

For MONTAGE scenes, add SCENE_VO: [text] after all shots.{audio_guidelines}"""

    SHOTS_USER = "Generate shots:\n\n{scenes}"

    SCENE_SECTION = (
        "SCENE {scene} - {type} - {location}\n"
        "Duration: {duration}s | Target: {target_shots} shots ({timing_guide})\n"
        "Summary: {summary}"
    )

    VO_INSTRUCTION = "\nVO: [emotion] narration text"
    DIALOGUE_INSTRUCTION = '\nDIALOGUE: CHARACTER_NAME: [emotion] "spoken words"'

    NARRATION_PACE = {
        "slow": "Use contemplative, poetic narration with dramatic pauses. Fewer words, more impact.",
        "fast": "Use energetic, quick-paced narration. More words per second, dynamic delivery.",
    }
    NARRATION_PACE_DEFAULT = "Use natural reading pace narration. Balanced and conversational."

    NARRATION_COMPLEXITY = {
        "simple": "Use simple, easy-to-understand language.",
        "advanced": "Use sophisticated, eloquent vocabulary.",
    }
    NARRATION_COMPLEXITY_DEFAULT = "Use standard language for general audience."

    DIALOGUE_AMOUNT = {
        "minimal": "Use sparse dialogue - but include AT LEAST 1-2 lines of essential dialogue in the entire sequence.",
        "heavy": "Use lots of dialogue - characters talk frequently in most shots.",
    }
    DIALOGUE_AMOUNT_DEFAULT = "Use balanced dialogue - natural conversation flow."

    DIALOGUE_COMPLEXITY = {
        "simple": "Use casual, everyday speech patterns.",
        "advanced": "Use eloquent, complex dialogue.",
    }
    DIALOGUE_COMPLEXITY_DEFAULT = "Use natural conversational language."

    NARRATION_STYLE = "\nNARRATION STYLE: {pace} {complexity}"
    DIALOGUE_STYLE = (
        "\nDIALOGUE STYLE: {amount} {complexity} IMPORTANT: When dialogue is requested, "
        "you MUST include at least some dialogue lines."
    )

    # ==========================================================================
    # STYLE / ENTITIES
    # ==========================================================================

    STYLE_SYSTEM = """Create art style guide. Output:
STYLE: [Name]
PROMPT: Art Style: [400-600 char description with colors, lighting, texturing. End with "Exclude: text, logos, watermarks"]

Do NOT use asterisks, hashtags, or markdown formatting."""

    STYLE_USER = "Create style guide for: {style}"

    STYLE_FALLBACK = "Art Style: {style} with balanced composition. Exclude: text, logos, watermarks"

    CHARACTERS_SYSTEM = """Extract ALL characters (2+ appearances). Include role in brackets.

Format: CHARACTER NAME [ROLE] | Age: [age] | [description]. Exclude: text, logos, watermarks.

CRITICAL NAMING RULES:
- Give each character a UNIQUE, DISTINCTIVE name that can be easily identified in text
- For groups of similar characters (e.g., three flies, two children), give each a unique identifier like "Buzz the Fly", "Scout the Fly", "Zippy the Fly" OR "Fly Alpha", "Fly Beta", "Fly Gamma"
- NEVER use generic numbered names like "Fly 1", "Fly 2" - use memorable distinctive names
- Names should be searchable and unique within the story

Roles: PROTAGONIST, ANTAGONIST, SECONDARY, TERTIARY, ANTIHERO
Include creatures, animated objects, etc. Do NOT use markdown."""

    CHARACTERS_USER = "Extract recurring characters:\n\n{shots}"

    BACKGROUNDS_SYSTEM = """Extract ALL backgrounds/locations. EMPTY scenes - no people/characters.

Format: LOCATION NAME (Time) | [description]. Exclude: people, characters, figures, text, logos, watermarks.

Same location + different time = separate entries. Do NOT use markdown."""

    BACKGROUNDS_USER = "Locations:\n{locations}\n\nShots:\n{shots}"

    BACKGROUND_FALLBACK = "{location} | Empty environment. Exclude: people, characters, figures, text, logos, watermarks."

    ITEMS_SYSTEM = """Extract ITEMS (inanimate objects, props). NOT characters.

Format: ITEM NAME | [description on neutral background]. Exclude: text, logos, watermarks.

Characters already extracted: {characters}
If no items, output: NO_ITEMS_FOUND"""

    ITEMS_USER = "Extract items:\n\n{shots}"

    # ==========================================================================
    # FRAMES / ANIMATION
    # ==========================================================================

    FRAMES_SYSTEM = """Create FIRST FRAME and LAST FRAME prompts for STILL IMAGES.

CRITICAL: When characters are listed, you MUST refer to each character by their EXACT NAME in the prompts. Never say "three characters" or "the flies" - always use each character's specific name like "Fly One", "Fly Two", "Fly Three".

FIRST FRAME: [400-600 chars - starting composition, poses, lighting. Name each character explicitly.]
LAST FRAME: [200-400 chars - what changed by end. Name each character explicitly.]

No motion verbs. Always provide BOTH."""

    FRAMES_USER = "Framing: {framing}\nDuration: {duration}s\nDescription: {description}"

    FRAME_FIRST_FALLBACK = "{framing} composition. {description}"
    FRAME_LAST_FALLBACK = "Same composition with subtle progression."

    ANIMATION_SYSTEM = (
        "Create animation prompt describing motion. One paragraph. CRITICAL: When characters "
        "are listed, refer to each character by their EXACT NAME. Never say \"the characters\" "
        "or use generic terms - always use each character's specific name."
    )

    ANIMATION_USER = "Duration: {duration}s\nDescription: {description}"

    # Section labels appended to frame/animation prompts
    CHARACTERS_SECTION = "\n\nCHARACTERS IN THIS SHOT (always refer to them by exact name):\n{names}"
    BACKGROUND_SECTION = "\n\nBACKGROUND: {names}"
    ITEMS_SECTION = "\n\nITEMS IN SHOT: {names}"

    # ==========================================================================
    # REGENERATION
    # ==========================================================================

    INSTRUCTIONS_SUFFIX = "\n\nUser instructions: {instructions}"

    SHOT_REGEN_SYSTEM = """Regenerate this shot with fresh ideas. Keep same scene context but create new visuals/action.
Format:
FRAMING: [ECU/CU/MCU/MS/MWS/WS/EWS/OTS/POV/TWO-SHOT]
TIMING: [seconds - similar to original: {timing}s]
BEAT: [story goal]
DESCRIPTION: [detailed visual action]{audio_instructions}

No markdown formatting."""

    SHOT_REGEN_USER = """Scene {scene}, Shot {shot}
Scene type: {scene_type}
Scene summary: {summary}
Current shot: {description}{instructions}

Create a NEW version of this shot."""

    STYLE_REGEN_SYSTEM = (
        "Create art style guide. Output:\nSTYLE: [Name]\nPROMPT: Art Style: [400-600 char]. "
        "End with \"Exclude: text, logos, watermarks\"\n\nNo markdown."
    )

    STYLE_REGEN_USER = "Create a NEW style guide for: {style}{instructions}"

    CHARACTER_REGEN_SYSTEM = (
        "Create character visual prompt. One line:\nCHARACTER NAME {role} | Age: [age] | "
        "[description]. Exclude: text, logos, watermarks.\n\nNo markdown."
    )

    CHARACTER_REGEN_USER = "Create NEW visual for: {name}{role}{instructions}"

    BACKGROUND_REGEN_SYSTEM = (
        "Create background visual prompt. One line:\nLOCATION NAME | [EMPTY scene description]. "
        "Exclude: people, characters, figures, text, logos, watermarks.\n\nNo markdown."
    )

    BACKGROUND_REGEN_USER = "Create NEW visual for location: {name}{instructions}"

    ITEM_REGEN_SYSTEM = (
        "Create item visual prompt. One line:\nITEM NAME | [description, neutral background]. "
        "Exclude: text, logos, watermarks.\n\nNo markdown."
    )

    ITEM_REGEN_USER = "Create NEW visual for item: {name}{instructions}"

    FIRST_FRAME_REGEN_SYSTEM = (
        "Create FIRST FRAME prompt (400-600 chars) - static pose, composition, lighting. No motion verbs."
    )
    LAST_FRAME_REGEN_SYSTEM = (
        "Create LAST FRAME prompt (200-400 chars) - what changed from start. No motion verbs."
    )

    FRAME_REGEN_USER = "Shot: {framing}\nDuration: {duration}s\nDescription: {description}{instructions}"

    ANIMATION_REGEN_SYSTEM = "Create animation prompt describing motion. One paragraph."

    ANIMATION_REGEN_USER = "Duration: {duration}s\nDescription: {description}{instructions}"

    SCENE_FRAMES_REGEN_SYSTEM = (
        "Create FIRST FRAME and LAST FRAME prompts. CRITICAL: Name each character explicitly."
        "\n\nFIRST FRAME: [400-600 chars]\nLAST FRAME: [200-400 chars]\n\nNo motion verbs."
    )

    SCENE_ANIMATIONS_REGEN_SYSTEM = (
        "Create animation prompt describing motion. One paragraph. Name each character explicitly."
    )

    # Scene-wide regeneration uses shorter section labels
    REGEN_CHARACTERS_SECTION = "\n\nCHARACTERS IN THIS SHOT:\n{names}"
    REGEN_ITEMS_SECTION = "\n\nITEMS: {names}"
    REGEN_ANIMATION_CHARACTERS_SECTION = "\n\nCHARACTERS:\n{names}"

    @classmethod
    def render(cls, template: str, **kwargs) -> str:
        """Render a prompt template with variables."""
        return template.format(**kwargs)

    @classmethod
    def instructions(cls, text: str = "") -> str:
        """Optional user-steering suffix for regeneration prompts."""
        return cls.render(cls.INSTRUCTIONS_SUFFIX, instructions=text) if text else ""


def fmt_number(value: float) -> str:
    """Render a duration the way it reads in prompts: 3 not 3.0, 2.5 stays 2.5."""
    return f"{value:g}"
