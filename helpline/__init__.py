# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Helpline adoption platform.

`helpline.client` is the sponsor-side library used by the mobile app flows;
`helpline.app` is the Flask backend serving the adoption endpoints.
"""

__version__ = "1.0.0"
