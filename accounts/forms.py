from django import forms


class PasswordForm(forms.Form):
    """Single password field used by the login and the manual attendance unlock."""
    password = forms.CharField(widget=forms.PasswordInput, strip=False)
