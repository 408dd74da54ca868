"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- El Core depende de estas abstracciones, nunca de httpx ni de un backend de
  almacenamiento.
"""
