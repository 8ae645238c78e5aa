"""text-game — an LLM-narrated text adventure for the terminal."""
