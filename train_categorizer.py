# Trains the (embedder, classifier) pair used by ClassifierCategorizer
#
# Training data is JSONL, one {"text": ..., "label": ...} record per line.
# Run with: python3 train_categorizer.py --data train_data.jsonl
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List, Tuple

import joblib
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, f1_score
from sklearn.model_selection import train_test_split

from categorizer import DEFAULT_MODEL_PATH

EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


def load_training_data(path: Path) -> Tuple[List[str], List[str]]:
    texts = []
    labels = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip():  # skip empty lines if any
                record = json.loads(line)
                texts.append(record["text"])
                labels.append(str(record["label"]))
    return texts, labels


def train(texts, labels, embedder=None, test_size: float = 0.3, random_state: int = 42):
    """Fit a logistic regression on sentence embeddings.

    Returns (embedder, classifier, metrics). Metrics are computed on a held-out
    split when there is enough data for one.
    """
    if len(set(labels)) < 2:
        raise ValueError("Training data needs at least two distinct labels")
    if embedder is None:
        from sentence_transformers import SentenceTransformer

        embedder = SentenceTransformer(EMBEDDING_MODEL)

    X = embedder.encode(texts, show_progress_bar=False)

    metrics = {}
    if len(texts) >= 10:
        X_train, X_test, y_train, y_test = train_test_split(
            X, labels, test_size=test_size, random_state=random_state
        )
    else:
        X_train, X_test, y_train, y_test = X, None, labels, None

    clf = LogisticRegression(max_iter=1000)
    clf.fit(X_train, y_train)

    if X_test is not None:
        y_pred = clf.predict(X_test)
        metrics["accuracy"] = accuracy_score(y_test, y_pred)
        metrics["f1_macro"] = f1_score(y_test, y_pred, average="macro")
    return embedder, clf, metrics


def save_model(embedder, clf, model_path: Path) -> Path:
    joblib.dump((embedder, clf), model_path)
    return model_path


def main() -> None:
    parser = argparse.ArgumentParser(description="Train the article categorizer model.")
    parser.add_argument("--data", type=Path, default=Path("train_data.jsonl"), help="Labelled JSONL training data.")
    parser.add_argument("--output", type=Path, default=DEFAULT_MODEL_PATH, help="Where to save the model.")
    args = parser.parse_args()

    texts, labels = load_training_data(args.data)
    print(f"Loaded {len(texts)} training records with {len(set(labels))} labels")

    embedder, clf, metrics = train(texts, labels)
    if metrics:
        print(f"Accuracy: {metrics['accuracy']:.2f}")
        print(f"F1 Score (macro): {metrics['f1_macro']:.2f}")

    save_model(embedder, clf, args.output)
    print(f"Model and embedding pipeline saved to {args.output}")


if __name__ == "__main__":
    main()
