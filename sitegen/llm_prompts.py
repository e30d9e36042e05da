from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

MAX_TOKENS = 2000
TEMPERATURE = 0.7

SYSTEM_PROMPT = (
    "You are an expert web developer who creates beautiful, modern websites. "
    "Always return complete, working HTML files. Keep responses concise but complete."
)

_USER_PROMPT = """You are an expert web developer. Create a complete, modern, responsive HTML website based on this description: "{description}"

Requirements:
- Include complete HTML, CSS, and JavaScript in a single file
- Make it responsive and mobile-friendly
- Use modern CSS with gradients, shadows, and animations
- Include interactive elements if appropriate
- Make it visually appealing and professional
- Use semantic HTML5 elements
- Include proper meta tags and viewport settings
- Keep the code clean and well-structured
- Optimize for token usage efficiency

Return ONLY the complete HTML file with embedded CSS and JavaScript. No explanations, just the code."""


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str
    max_tokens: int = MAX_TOKENS
    temperature: float = TEMPERATURE

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_prompt(description: str) -> Prompt:
    """Return the system/user message pair for a website description.

    The description is embedded verbatim; the generation parameters are fixed
    and not configurable per request.
    """
    # str.format would choke on braces inside the description
    user = _USER_PROMPT.replace("{description}", description)
    return Prompt(system=SYSTEM_PROMPT, user=user)
