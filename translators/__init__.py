"""
Deterministic Translator Layer

Converts workflow task trees to Mermaid flowchart text for the preview surface.
Rendering is deterministic and independent of the normalizer.
"""

from .mermaid_translator import MermaidTranslator, DiagramRenderError, DiagramDirection, render

__all__ = ['MermaidTranslator', 'DiagramRenderError', 'DiagramDirection', 'render']
