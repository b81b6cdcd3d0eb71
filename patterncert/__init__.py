"""
Pattern Quality Assessment & Certification Engine

Assesses declarative prompt patterns and certifies their quality:
1. Lints pattern structure (StructuralValidator)
2. Executes sample inputs through an execution provider (SampleExecutionTester)
3. Reduces both into a weighted score, grade, certification tier and trend
   (QualityCertificationAggregator)
4. Keeps an append-only assessment history per pattern
"""

__version__ = "0.1.0"
