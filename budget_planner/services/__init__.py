"""Services that apply configured policy to the calculation engine."""
