"""This module serves as the entry point for the resume assistant application.

The resume assistant lets a user edit a structured resume document through
free-text chat instructions, scores the result against a job description, and
keeps an undo/redo timeline of committed versions.

Notes:
    1. This module does not contain any functions or classes of its own.
    2. The application logic is defined in the subpackages:
       - app.resume: field paths and the modification applier.
       - app.chat: natural-language modification intents.
       - app.ats: the ATS scoring engine.
       - app.agent: the orchestrator that ties the pipeline together.
       - app.history: the storage-backed undo/redo timeline.
    3. No disk, network, or database access occurs in this module directly.

"""
