"""
Plain-text rendering of planning results for the CLI.

formatters : format_plan_step() + format_bands() + format_warnings().
"""
