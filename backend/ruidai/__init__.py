"""RUIDAI: similar-problem worksheets from photos of exam problems."""
