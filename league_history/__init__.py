"""
Sleeper league history sync: lineage, matchups and playoff brackets into SQLite.
"""
