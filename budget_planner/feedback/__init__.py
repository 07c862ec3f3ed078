"""
Feedback intent classification.

classifier : IntentClassifier protocol + KeywordIntentClassifier.
"""
