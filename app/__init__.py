"""
                Restaurant Storefront

Arabic-first restaurant storefront backend: catalog API, session cart,
WhatsApp checkout hand-off and an ImageKit catalog sync job.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
