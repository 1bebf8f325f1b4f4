"""
Graph analytics for bipartite relations.

A relation such as dataset -> contributor is projected onto one side:
- Relation: load, deduplicate and frequency-filter the associations
- Projection: estimate, generate and assemble the co-occurrence edges
- Metrics: whole-graph statistics, two community partitions, node attributes
- Export: edge lists, graph pickle, visualization CSV, statistics and attributes
"""
