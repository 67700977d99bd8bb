# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pure adoption logic: record normalization, amounts, envelopes and pledge totals.
"""

from .amounts import AmountBreakdown, resolve_amount
from .envelopes import ListEnvelope, unwrap_list, unwrap_item, parse_auth_response
from .normalization import normalize, normalize_many
from .pledges import PledgeTotals, summarize
from .profiles import DomainFieldProfile, PROFILES

__all__ = [
    'AmountBreakdown',
    'resolve_amount',
    'ListEnvelope',
    'unwrap_list',
    'unwrap_item',
    'parse_auth_response',
    'normalize',
    'normalize_many',
    'PledgeTotals',
    'summarize',
    'DomainFieldProfile',
    'PROFILES',
]
