"""Review request persistence providers.

SQLiteReviewProvider stores questionnaires and one response per respondent.
"""
