"""
Attention mechanism for the seq2seq transliteration model.

Luong (multiplicative) attention: every decoder output position scores all
encoder positions with a dot product, optionally after a learned projection of
the keys.
"""

from typing import Optional, Tuple

import torch
import torch.nn as nn
import torch.nn.functional as F

# Large negative score for masked positions. Unlike -inf it keeps a fully
# masked row finite (uniform weights instead of NaN).
MASKED_SCORE = -1e9


class LuongAttention(nn.Module):
    """
    Luong attention (multiplicative attention).

    This attention mechanism computes attention scores using a simple dot product
    between query and key, optionally with a learned transformation of the keys.
    """

    def __init__(self, hidden_dim: int, attention_type: str = 'dot'):
        """
        Initialize Luong attention.

        Args:
            hidden_dim: Dimension of hidden states
            attention_type: Type of attention ('dot', 'general')
        """
        super().__init__()
        self.hidden_dim = hidden_dim
        self.attention_type = attention_type

        if attention_type == 'general':
            self.attention_net = nn.Linear(hidden_dim, hidden_dim, bias=False)
        elif attention_type == 'dot':
            self.attention_net = None
        else:
            raise ValueError(f"Unknown attention type: {attention_type}")

    def forward(self, query: torch.Tensor, keys: torch.Tensor,
                values: torch.Tensor, mask: Optional[torch.Tensor] = None) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Compute Luong attention.

        Args:
            query: Query tensor [batch_size, query_len, hidden_dim]
            keys: Key tensor [batch_size, key_len, hidden_dim]
            values: Value tensor [batch_size, key_len, value_dim]
            mask: Boolean mask broadcastable to [batch_size, query_len, key_len],
                True at positions that must not be attended

        Returns:
            Tuple of (context_vector, attention_weights)
            - context_vector: [batch_size, query_len, value_dim]
            - attention_weights: [batch_size, query_len, key_len]
        """
        if self.attention_net is not None:
            keys = self.attention_net(keys)

        attention_scores = torch.bmm(query, keys.transpose(1, 2))

        if mask is not None:
            attention_scores = attention_scores.masked_fill(mask, MASKED_SCORE)

        attention_weights = F.softmax(attention_scores, dim=-1)
        context_vector = torch.bmm(attention_weights, values)

        return context_vector, attention_weights


def create_padding_mask(seq: torch.Tensor, pad_idx: int = 0) -> torch.Tensor:
    """
    Create padding mask for attention over encoder positions.

    Args:
        seq: Encoder input [batch_size, seq_len]
        pad_idx: Padding index

    Returns:
        Mask [batch_size, 1, seq_len] where True indicates padding
    """
    return (seq == pad_idx).unsqueeze(1)
