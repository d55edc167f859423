#!/usr/bin/env python3
"""
Generative Classifier Walkthrough
=================================
Worked examples for Naive Bayes, QDA and LDA on synthetic Gaussian data.

Usage:
  python scripts/generative_walkthrough.py [section] [--verbose]

Sections:
  1 - 1-D decision boundary (two equal-variance classes)
  2 - Prevalence correction (overriding priors)
  3 - Three classes: LDA vs QDA vs Naive Bayes
  all - Run all sections
"""

import argparse
import os
import sys

import numpy as np

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from config import LoggingConfig
from evaluation import confusion_matrix, print_confusion_matrix, sensitivity_specificity
from generative_models import (
    GaussianClassifier,
    GaussianNB,
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
    configure_logging,
    make_gaussian_classes,
)
from generative_models.synthetic import train_test_split


def section_header(num, title):
    """Print section header."""
    print("\n")
    print("#" * 70)
    print(f"# SECTION {num}: {title}")
    print("#" * 70)
    print()


# =============================================================================
# SECTION 1: 1-D BOUNDARY
# =============================================================================
def demo_boundary(n_per_class: int = 1000, seed: int = 0) -> float:
    """Fit LDA on N(0, 1) vs N(3, 1); return the estimated boundary."""
    section_header(1, "1-D DECISION BOUNDARY")

    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=n_per_class, seed=seed)
    model = GaussianClassifier(mode="pooled").fit(X, y)

    w, b = model.linear_boundary()
    boundary = -b / w[0]
    print(f"Estimated boundary: x = {boundary:.3f} (theory: 1.5)")

    for x in [1.0, 1.4, 1.5, 1.6, 2.0]:
        proba = model.predict_proba([x])
        print(f"  x={x:.1f}  P(y=1|x)={proba[1]:.3f}  label={model.predict([x])}")

    return boundary


# =============================================================================
# SECTION 2: PREVALENCE CORRECTION
# =============================================================================
def demo_prevalence(n_total: int = 5000, seed: int = 1) -> dict:
    """Compare empirical priors (0.8/0.2) with a 0.5/0.5 override."""
    section_header(2, "PREVALENCE CORRECTION")

    n_pos = n_total // 5
    X, y = make_gaussian_classes([0.0, 2.0], n_per_class=[n_total - n_pos, n_pos], seed=seed)
    model = GaussianClassifier(mode="pooled").fit(X, y)
    print(f"Empirical priors: {model.priors}")

    results = {}
    for name, priors in [("empirical", None), ("balanced", [0.5, 0.5])]:
        y_pred = model.predict(X, priors=priors)
        sens, spec = sensitivity_specificity(y, y_pred, positive_label=1)
        results[name] = (sens, spec)
        print(f"  {name:<10} sensitivity={sens:.3f}  specificity={spec:.3f}")

    return results


# =============================================================================
# SECTION 3: THREE CLASSES
# =============================================================================
def demo_three_classes(n_per_class: int = 300, seed: int = 2) -> dict:
    """Held-out accuracy of the three Gaussian models on 2-D clusters."""
    section_header(3, "THREE CLASSES: LDA vs QDA vs NAIVE BAYES")

    X, y = make_gaussian_classes(
        [[0, 0], [4, 0], [0, 4]],
        n_per_class=n_per_class,
        covariances=[np.eye(2), [[1.0, 0.6], [0.6, 1.0]], [[0.5, 0.0], [0.0, 2.0]]],
        seed=seed,
    )
    X_train, X_test, y_train, y_test = train_test_split(X, y, test_fraction=0.3, seed=seed)

    scores = {}
    fitted = {}
    for model in [LinearDiscriminantAnalysis(), QuadraticDiscriminantAnalysis(), GaussianNB()]:
        name = type(model).__name__
        fitted[name] = model.fit(X_train, y_train)
        scores[name] = model.score(X_test, y_test)
        print(f"  {name:<32} test accuracy = {scores[name]:.4f}")

    qda = fitted["QuadraticDiscriminantAnalysis"]
    cm = confusion_matrix(y_test, qda.predict(X_test), labels=qda.classes_)
    print()
    print(print_confusion_matrix(cm, class_names=[str(c) for c in qda.classes_], title="QDA Confusion Matrix"))

    return scores


def main():
    parser = argparse.ArgumentParser(description="Gaussian generative classifier walkthrough")
    parser.add_argument('section', nargs='?', default='all', help="Section to run (1-3 or 'all')")
    parser.add_argument('--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args()

    configure_logging(LoggingConfig(level="DEBUG" if args.verbose else "INFO"))

    sections = {
        '1': demo_boundary,
        '2': demo_prevalence,
        '3': demo_three_classes,
    }

    if args.section.lower() == 'all':
        for num in ['1', '2', '3']:
            sections[num]()
    elif args.section in sections:
        sections[args.section]()
    else:
        print(f"Unknown section: {args.section}")
        print("Use 1-3 or 'all'")
        return

    print("\n" + "=" * 70)
    print("WALKTHROUGH COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    main()
