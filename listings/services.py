from django.core.exceptions import ValidationError

from .models import Dress, Hall, ServiceProvider

LISTING_MODELS = {
    'provider': ServiceProvider,
    'hall': Hall,
    'dress': Dress,
}


def owner_for(kind, listing_id):
    """Return the owner id of a listing, or None when it does not exist."""
    model = LISTING_MODELS.get(kind)
    if model is None:
        raise ValueError(f"Unknown listing kind: {kind}")
    try:
        return model.objects.filter(id=listing_id).values_list('owner_id', flat=True).first()
    except ValidationError:
        # Malformed UUID
        return None
