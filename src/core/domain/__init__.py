"""Modelos del dominio y catálogo estático.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2) y el
  catálogo declarativo de dominios.
- El dominio no conoce HTTP, CLI ni almacenamiento: solo conceptos del problema.
"""
