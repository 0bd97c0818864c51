"""Backend boutique: authentification à double jeton, checkout Stripe et coupons cadeaux."""
