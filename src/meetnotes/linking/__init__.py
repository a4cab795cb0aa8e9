"""Note-similarity and linking engine.

Related notes are found with a weighted-sum heuristic over shared tags,
shared keywords, project, date proximity and assignees. Manual links are kept
bidirectional (manual on one side, backlink on the other); auto-discovered
"related" links are one-directional.
"""
