"""
Evaluation Metrics - Implemented FROM SCRATCH.

Classification metrics for the Gaussian generative classifiers:
- Confusion Matrix (arbitrary labels)
- Accuracy
- Sensitivity / Specificity (binary decision rules, prevalence correction)
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple


# =============================================================================
# CLASSIFICATION METRICS
# =============================================================================

def confusion_matrix(y_true: np.ndarray, y_pred: np.ndarray,
                     labels: Optional[Sequence] = None,
                     normalize: Optional[str] = None) -> np.ndarray:
    """
    Compute confusion matrix from scratch.

    Parameters
    ----------
    y_true : np.ndarray
        Ground truth labels.
    y_pred : np.ndarray
        Predicted labels.
    labels : sequence, optional
        Label order for rows/columns. If None, the sorted union of labels
        seen in y_true and y_pred.
    normalize : str, optional
        Normalization mode: 'true' (by row), 'pred' (by column), 'all'.

    Returns
    -------
    np.ndarray
        Confusion matrix of shape (n_labels, n_labels).
        Row i, column j is the count of samples with true label i
        predicted as label j.

    Mathematical Definition
    -----------------------
    CM[i,j] = |{x : y_true(x) = i AND y_pred(x) = j}|

    Example
    -------
    >>> y_true = np.array([0, 0, 1, 1, 2, 2])
    >>> y_pred = np.array([0, 1, 1, 1, 2, 0])
    >>> cm = confusion_matrix(y_true, y_pred)
    >>> print(cm)
    [[1 1 0]
     [0 2 0]
     [1 0 1]]
    """
    y_true = np.asarray(y_true).ravel()
    y_pred = np.asarray(y_pred).ravel()

    if len(y_true) != len(y_pred):
        raise ValueError(f"y_true has {len(y_true)} labels but y_pred has {len(y_pred)}")

    if labels is None:
        labels = np.unique(np.concatenate([y_true, y_pred]))
    labels = list(np.asarray(labels).tolist())
    index = {label: i for i, label in enumerate(labels)}
    n_labels = len(labels)

    # Initialize confusion matrix
    cm = np.zeros((n_labels, n_labels), dtype=np.int64)

    # Count occurrences; pairs with a label outside `labels` are skipped
    for true_label, pred_label in zip(y_true.tolist(), y_pred.tolist()):
        if true_label in index and pred_label in index:
            cm[index[true_label], index[pred_label]] += 1

    # Normalize if requested
    if normalize == 'true':
        # Normalize by row (true labels) - gives recall per class
        row_sums = cm.sum(axis=1, keepdims=True)
        row_sums[row_sums == 0] = 1  # Avoid division by zero
        cm = cm.astype(np.float64) / row_sums
    elif normalize == 'pred':
        # Normalize by column (predictions) - gives precision per class
        col_sums = cm.sum(axis=0, keepdims=True)
        col_sums[col_sums == 0] = 1
        cm = cm.astype(np.float64) / col_sums
    elif normalize == 'all':
        total = cm.sum()
        if total > 0:
            cm = cm.astype(np.float64) / total
    elif normalize is not None:
        raise ValueError(f"normalize must be 'true', 'pred', 'all' or None, got '{normalize}'")

    return cm


def accuracy_score(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Calculate classification accuracy.

    Parameters
    ----------
    y_true : np.ndarray
        Ground truth labels.
    y_pred : np.ndarray
        Predicted labels.

    Returns
    -------
    float
        Accuracy score in [0, 1].

    Mathematical Definition
    -----------------------
    Accuracy = (TP + TN) / (TP + TN + FP + FN)
             = correct_predictions / total_predictions
    """
    y_true = np.asarray(y_true).ravel()
    y_pred = np.asarray(y_pred).ravel()

    if len(y_true) == 0:
        return 0.0

    return float(np.mean(y_true == y_pred))


def sensitivity_specificity(y_true: np.ndarray, y_pred: np.ndarray,
                            positive_label=1) -> Tuple[float, float]:
    """
    Sensitivity and specificity of a binary decision rule.

    Parameters
    ----------
    y_true : np.ndarray
        Ground truth labels.
    y_pred : np.ndarray
        Predicted labels.
    positive_label
        Label treated as the positive class; every other label is negative.

    Returns
    -------
    (float, float)
        Sensitivity (true-positive rate) and specificity (true-negative rate).
        A rate is NaN when its denominator is empty.

    Mathematical Definition
    -----------------------
    Sensitivity = TP / (TP + FN)
    Specificity = TN / (TN + FP)
    """
    y_true = np.asarray(y_true).ravel()
    y_pred = np.asarray(y_pred).ravel()

    actual_pos = y_true == positive_label
    pred_pos = y_pred == positive_label

    tp = np.sum(actual_pos & pred_pos)
    fn = np.sum(actual_pos & ~pred_pos)
    tn = np.sum(~actual_pos & ~pred_pos)
    fp = np.sum(~actual_pos & pred_pos)

    sensitivity = tp / (tp + fn) if (tp + fn) > 0 else float('nan')
    specificity = tn / (tn + fp) if (tn + fp) > 0 else float('nan')
    return float(sensitivity), float(specificity)


# =============================================================================
# TEXT OUTPUT
# =============================================================================

def print_confusion_matrix(cm: np.ndarray,
                           class_names: Optional[List[str]] = None,
                           title: str = "Confusion Matrix") -> str:
    """
    Create ASCII representation of confusion matrix.

    Parameters
    ----------
    cm : np.ndarray
        Confusion matrix.
    class_names : list, optional
        Names for each class.
    title : str
        Title for the matrix.

    Returns
    -------
    str
        Formatted string representation.
    """
    n_classes = cm.shape[0]

    if class_names is None:
        class_names = [f"C{i}" for i in range(n_classes)]
    class_names = [str(name) for name in class_names]

    # Determine column widths
    max_val = np.max(cm) if cm.size else 0
    val_width = max(len(str(int(max_val))), 4)
    label_width = max(len(name) for name in class_names)

    lines = [title, "=" * (label_width + 2 + (val_width + 1) * n_classes + 10)]

    header = " " * (label_width + 8) + "Predicted"
    lines.append(header)

    header2 = " " * (label_width + 8) + " ".join(f"{name:>{val_width}}" for name in class_names)
    lines.append(header2)

    lines.append("-" * len(header2))

    for i, row_name in enumerate(class_names):
        prefix = "Actual " if i == n_classes // 2 else "       "
        row_vals = " ".join(f"{int(cm[i, j]):>{val_width}}" for j in range(n_classes))
        lines.append(f"{prefix}{row_name:>{label_width}} {row_vals}")

    lines.append("=" * len(header2))

    correct = np.trace(cm)
    total = np.sum(cm)
    accuracy = correct / total if total > 0 else 0
    lines.append(f"Accuracy: {accuracy:.4f} ({int(correct)}/{int(total)})")

    return "\n".join(lines)
