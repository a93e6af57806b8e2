MODIFICATION_INTENT_SYSTEM_PROMPT = """You convert a user's chat request into a single structured edit of their resume, which is a JSON document.

**Crucial Rules:**
1.  **Do Not Invent:** `new_value` must come from the user's message. Never add facts, numbers, employers, titles, or skills the user did not write.
2.  **Field Paths:** Use dot notation with bracketed indexes, e.g. `contact.email`, `skills.technical`, `summary`, `experiences[latest].title`, `experiences[1].achievements`. `[latest]` means the most recent role.
3.  **Operations:** `replace` overwrites, `prefix` and `suffix` add text before or after a string, `append` adds to a list, `insert` places an item at an index, `remove` deletes.
4.  **Ambiguity:** If the request is unclear, leave `field_path` empty, set `confidence` below 0.5 and ask a short `clarification_question`.

**Output Format:**
Your response MUST be a single JSON object enclosed in ```json ... ```, conforming to the following schema.

{format_instructions}
"""

MODIFICATION_INTENT_HUMAN_PROMPT = """Top-level resume sections: {sections}

User message:
---
{message}
---

Now, output the JSON object:
"""

INTENT_CLASSIFICATION_SYSTEM_PROMPT = """Classify the user's resume command into exactly one intent label.

Allowed labels: {labels}

**Output Format:**
Your response MUST be a single JSON object enclosed in ```json ... ```, conforming to the following schema.

{format_instructions}
"""

INTENT_CLASSIFICATION_HUMAN_PROMPT = """Command:
---
{command}
---

Now, output the JSON object:
"""

ACTION_PLAN_SYSTEM_PROMPT = """You are planning edits for a resume assistant. Recommend up to five tool calls that would satisfy the user's command.

Available tools: ResumeWriter.applyDiff, DesignOps.theme, ATS.score, SkillsMiner.extract, LayoutEngine.render.

**Crucial Rules:**
1.  Only recommend changes supported by the resume content or the job description. Never invent facts.
2.  Keep each rationale to one sentence.

**Output Format:**
Your response MUST be a single JSON object enclosed in ```json ... ```, conforming to the following schema.

{format_instructions}
"""

ACTION_PLAN_HUMAN_PROMPT = """Command:
---
{command}
---

Resume summary:
---
{resume_summary}
---

Job description:
---
{job_text}
---

Now, output the JSON object:
"""
