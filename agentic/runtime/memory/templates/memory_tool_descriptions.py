"""
Tool descriptions for long-term memory operations.

These declarations are sent with every completion request so the model can
manage its own memory. Each entry is a JSON-schema parameter contract in the
chat-completions "function" tool shape.
"""

TOOL_DESCRIPTIONS = {
    "add_memory": {
        "name": "add_memory",
        "description": (
            "Add or update a long-term memory entry so it is available in future sessions. "
            "Use this whenever the user shares something important to remember "
            "(name, preferences, projects, goals, etc.)."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "key": {
                    "type": "string",
                    "description": (
                        "Short identifier for the memory, e.g. 'user_name', "
                        "'preferred_language', 'current_project'."
                    ),
                },
                "content": {
                    "type": "string",
                    "description": "The information to store.",
                },
            },
            "required": ["key", "content"],
            "additionalProperties": False,
        },
    },
    "search_memory": {
        "name": "search_memory",
        "description": (
            "Search stored long-term memories for a given query. "
            "Useful when you need to recall specific information about the user."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Keyword or phrase to search for in stored memories.",
                },
            },
            "required": ["query"],
            "additionalProperties": False,
        },
    },
    "get_all_memories": {
        "name": "get_all_memories",
        "description": (
            "Retrieve every stored long-term memory entry. "
            "Call this at the start of a session to load full context."
        ),
        "parameters": {
            "type": "object",
            "properties": {},
            "additionalProperties": False,
        },
    },
}


# Concise single-line descriptions for the console help screen
TOOL_DESCRIPTIONS_COMPACT = {
    "add_memory": "Persist or update a keyed fact about the user.",
    "search_memory": "Case-insensitive keyword search over stored facts.",
    "get_all_memories": "List every stored fact.",
}
