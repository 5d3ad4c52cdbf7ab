"""Query orchestration.

Runs one point query end to end:
1. Resolve catalog → viewport candidates
2. Fan-out per candidate → fetch, parse, ray-cast
3. Fan-in → match list + candidate table + status tag
"""
