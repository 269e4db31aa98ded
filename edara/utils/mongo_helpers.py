# edara/utils/mongo_helpers.py

SENSITIVE_FIELDS = ("password_hash",)


def clean_doc(doc, drop=("_id",) + SENSITIVE_FIELDS):
    """
    Quita el _id interno de Mongo (ObjectId) y los campos sensibles para que
    FastAPI pueda serializar el documento. Soporta dicts, listas y documentos anidados.
    """
    if not doc:
        return doc

    if isinstance(doc, list):
        return [clean_doc(d, drop) for d in doc]

    if isinstance(doc, dict):
        return {k: clean_doc(v, drop) for k, v in doc.items() if k not in drop}

    return doc
