"""
Entry point for mcq-bank.

Run with:
    python main.py practice "Nutrition"
    mcqbank practice "Nutrition"
"""
from mcqbank.cli.main import main

if __name__ == "__main__":
    main()
