"""BCRP economic indicator series: resilient fetching and cleaning."""
