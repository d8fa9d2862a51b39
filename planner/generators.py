"""
Syllabus and graphic organizer generation through the Gemini REST API.
"""
import json
import logging

import requests
from django.conf import settings

from .utils import Topic

logger = logging.getLogger(__name__)

GEMINI_API_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'

SYLLABUS_SCHEMA = {
    'type': 'ARRAY',
    'items': {
        'type': 'OBJECT',
        'properties': {
            'titulo': {'type': 'STRING'},
            'descripcion': {'type': 'STRING'},
        },
        'required': ['titulo', 'descripcion'],
    },
}

ORGANIZER_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'tema_principal': {
            'type': 'OBJECT',
            'properties': {
                'nombre': {'type': 'STRING'},
                'definicion': {'type': 'STRING'},
            },
            'required': ['nombre', 'definicion'],
        },
        'subtemas': {
            'type': 'ARRAY',
            'items': {
                'type': 'OBJECT',
                'properties': {
                    'nombre': {'type': 'STRING'},
                    'puntos_clave': {'type': 'ARRAY', 'items': {'type': 'STRING'}},
                },
                'required': ['nombre', 'puntos_clave'],
            },
        },
    },
    'required': ['tema_principal', 'subtemas'],
}


class SyllabusGenerationError(Exception):
    """The generator is not configured or returned something unusable."""


def _generate_json(prompt, schema):
    """
    Send ``prompt`` to Gemini and decode the JSON it answers with.

    Network failures propagate as ``requests.RequestException`` so callers
    can retry them.
    """
    api_key = getattr(settings, 'GEMINI_API_KEY', '')
    if not api_key:
        raise SyllabusGenerationError("GEMINI_API_KEY is not configured")

    model = getattr(settings, 'PLANNER_GENERATOR_MODEL', 'gemini-2.5-flash')
    payload = {
        'contents': [{'parts': [{'text': prompt}]}],
        'generationConfig': {
            'responseMimeType': 'application/json',
            'responseSchema': schema,
        },
    }
    headers = {'Content-Type': 'application/json'}

    response = requests.post(
        GEMINI_API_URL.format(model=model),
        params={'key': api_key},
        json=payload,
        headers=headers,
        timeout=60,
    )
    response.raise_for_status()
    result = response.json()

    try:
        text = result['candidates'][0]['content']['parts'][0]['text']
        return json.loads(text)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Unexpected Gemini response: {result}")
        raise SyllabusGenerationError(f"Could not read the generated content: {e}")


def generate_syllabus_topics(subject, description, num_classes):
    """
    Ask the generator for ``num_classes`` progressive topics of a course.

    Returns:
        list: Topic instances, in teaching order
    """
    num_classes = int(num_classes)
    if num_classes < 1:
        raise SyllabusGenerationError("At least one class is required")

    prompt = (
        f"Genera un temario coherente y progresivo para un curso de {num_classes} clases "
        f"de la materia '{subject.name}'. Descripción del curso: {description}. "
        f"Devuelve exactamente {num_classes} elementos, uno por clase, cada uno con un "
        f"'titulo' breve y una 'descripcion' de una o dos frases."
    )
    items = _generate_json(prompt, SYLLABUS_SCHEMA)
    if not isinstance(items, list):
        raise SyllabusGenerationError("The generated syllabus is not a list")

    topics = []
    for item in items[:num_classes]:
        title = str(item.get('titulo') or '').strip() if isinstance(item, dict) else ''
        if not title:
            continue
        topics.append(Topic(title=title, description=str(item.get('descripcion') or '').strip() or None))

    if not topics:
        raise SyllabusGenerationError("The generated syllabus has no topics")
    logger.info(f"Generated {len(topics)} topics for {subject}")
    return topics


def generate_graphic_organizer(subject, planned_class):
    """
    Graphic organizer of one planned class: a main topic with its
    definition and a list of subtopics with key points.
    """
    prompt = (
        f"Crea un organizador gráfico para la clase '{planned_class.title}' "
        f"de la materia '{subject.name}'."
    )
    if planned_class.description:
        prompt += f" Contexto de la clase: {planned_class.description}."
    prompt += (
        " Incluye el tema principal con una definición breve y entre tres y cinco "
        "subtemas, cada uno con sus puntos clave."
    )

    data = _generate_json(prompt, ORGANIZER_SCHEMA)
    if not isinstance(data, dict) or 'tema_principal' not in data:
        raise SyllabusGenerationError("The generated organizer has no main topic")

    main = data.get('tema_principal') or {}
    return {
        'main_topic': {
            'name': main.get('nombre', ''),
            'definition': main.get('definicion', ''),
        },
        'subtopics': [
            {'name': sub.get('nombre', ''), 'key_points': list(sub.get('puntos_clave') or [])}
            for sub in data.get('subtemas') or []
            if isinstance(sub, dict)
        ],
    }
