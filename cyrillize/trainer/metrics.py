"""
Evaluation metrics for the transliteration model.

Targets are one-hot over the output vocabulary, as produced by the data
generator. Token accuracy counts padding positions too, so a model that has
learned where a word ends is rewarded for it.
"""

from typing import Dict, Optional, Sequence

import torch
import torch.nn.functional as F


def compute_metrics(predictions: torch.Tensor, targets: torch.Tensor,
                    loss: Optional[torch.Tensor] = None) -> Dict[str, float]:
    """
    Compute loss and accuracy for a batch.

    Args:
        predictions: Model logits [batch_size, seq_len, vocab_size]
        targets: One-hot targets [batch_size, seq_len, vocab_size] or
            class indices [batch_size, seq_len]
        loss: Loss already computed for this batch; recomputed when None

    Returns:
        Dictionary with computed metrics
    """
    if targets.dim() == 3:
        targets = targets.argmax(dim=-1)

    if loss is None:
        loss = F.cross_entropy(
            predictions.reshape(-1, predictions.size(-1)),
            targets.reshape(-1),
            reduction='mean'
        )

    with torch.no_grad():
        pred_indices = torch.argmax(predictions, dim=-1)
        accuracy = (pred_indices == targets).float().mean()

    return {
        'loss': loss.item(),
        'accuracy': accuracy.item(),
        'sequence_accuracy': sequence_accuracy(pred_indices, targets)
    }


def sequence_accuracy(pred_indices: torch.Tensor, targets: torch.Tensor) -> float:
    """
    Fraction of rows where every position is predicted correctly.

    Args:
        pred_indices: [batch_size, seq_len]
        targets: [batch_size, seq_len]
    """
    if pred_indices.numel() == 0:
        return 0.0
    return (pred_indices == targets).all(dim=-1).float().mean().item()


def word_accuracy(outputs: Sequence[str], references: Sequence[str]) -> float:
    """
    Fraction of decoded words equal to their reference (surrounding whitespace ignored).

    Args:
        outputs: Decoded model outputs
        references: Expected Cyrillic words
    """
    if len(outputs) != len(references):
        raise ValueError("Number of outputs and references must match")
    if not references:
        return 0.0

    correct = sum(out.strip() == ref.strip() for out, ref in zip(outputs, references))
    return correct / len(references)
