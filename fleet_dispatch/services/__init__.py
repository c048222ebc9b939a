"""
Services Layer
Read-side services and data getters used primarily by routes.

Services should:
- Not modify data models or business state
- Read from multiple data models to aggregate information
- Be stateless
"""
