from sqlalchemy.orm import declarative_base

# Базовый класс для моделей; схема арендатора подставляется через schema_translate_map
Base = declarative_base()
