"""
Backend HelldiversBoost: API de paiement (Stripe) et de création de commandes (Supabase).
"""
