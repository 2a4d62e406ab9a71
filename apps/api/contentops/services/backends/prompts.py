SCRIPT_WRITER_SYSTEM = """You turn news articles into material for other media.
Write in the requested language. Return ONLY valid JSON matching the requested shape."""

VIDEO_SCRIPT_USER_TEMPLATE = """Language: {language}
Write a short spoken script (60-90 seconds) for a presenter video about this article.
Return JSON: {{"title": str, "script": str}}

Title: {title}
Article:
{content}
"""

PODCAST_TRANSCRIPT_USER_TEMPLATE = """Language: {language}
Write a two-host podcast transcript discussing this article.
Return JSON: {{"title": str, "transcript": str}}

Title: {title}
Article:
{content}
"""

INTERACTIVE_PODCAST_USER_TEMPLATE = """Language: {language}
Write an interactive podcast as ordered segments. Some segments pause and ask the listener a question.
Return JSON: {{"title": str, "segments": [{{"speaker": str, "text": str, "question": str | null, "options": [str], "answer_index": int | null}}]}}

Title: {title}
Article:
{content}
"""

QUIZ_USER_TEMPLATE = """Language: {language}
Write 5 multiple-choice questions testing comprehension of this article.
Return JSON: {{"questions": [{{"question": str, "options": [str], "answer_index": int, "explanation": str}}]}}

Title: {title}
Article:
{content}
"""
