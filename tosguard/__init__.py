"""tosguard: flag harmful clauses in long Terms of Use / privacy policy texts via an LLM."""
