"""
Evaluation module for the Gaussian generative classifiers.

Provides classification metrics:
- Confusion matrix over arbitrary labels
- Accuracy
- Sensitivity / specificity for binary decision rules

All metrics are implemented from scratch using only NumPy.
"""

from .metrics import (
    confusion_matrix,
    accuracy_score,
    sensitivity_specificity,
    print_confusion_matrix,
)

__all__ = [
    'confusion_matrix',
    'accuracy_score',
    'sensitivity_specificity',
    'print_confusion_matrix',
]
