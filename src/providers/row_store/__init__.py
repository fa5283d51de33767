"""Dataset / response-row persistence providers.

SQLiteRowStore keeps datasets, their rows, and analysis progress in
data/feedback_pulse.db, including the row claims used by the batch
advancer.
"""
