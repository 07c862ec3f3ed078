"""
Planning sessions: the stateful layer around the allocation engine.

session : PlanningSession (history, undo, refinement limit, last-write-wins)
          + RefinementBudget.
"""
