"""Prompt templates for article enhancement."""

SYSTEM_PROMPT = (
    "You are a professional content editor who enhances articles while "
    "preserving their original meaning."
)

ORIGINAL_SECTION = """You are a content enhancement specialist. Your task is to improve the following article while maintaining its original topic and message.

## Original Article
Title: {title}

Content:
{body}

"""

REFERENCES_HEADER = """## Reference Articles for Context
The following articles cover similar topics and can provide additional insights:

"""

REFERENCE_ENTRY = """### Reference {number}: {title}
{excerpt}

"""

INSTRUCTIONS = """## Instructions
1. Improve the article's structure and formatting
2. Enhance clarity and readability
3. Incorporate relevant insights from the reference articles where appropriate
4. Maintain the original article's core message and topic
5. Use proper headings, bullet points, and paragraphs for better organization
6. Keep the tone professional and engaging

Please provide the enhanced article content only, without any meta-commentary."""

CITATION_SEPARATOR = "\n\n---\n\n"

CITATION_HEADER = "## References"

CITATION_ENTRY = "{number}. [{title}]({url})\n"
