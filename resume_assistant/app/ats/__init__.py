"""ATS scoring engine.

The engine compares a resume document with a job description and produces an
overall 0-100 score, eight weighted sub-scores, recommendations, and a
per-language keyword-gap breakdown.

"""
