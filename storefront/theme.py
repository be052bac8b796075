"""Static design tokens served to the presentation layer."""

LIGHT_THEME = {
    'colors': {
        'primary': '#FF8A65',
        'primaryLight': '#FFB74D',
        'primaryDark': '#FF7043',
        'secondary': '#FFFFFF',
        'secondaryLight': '#FAFAFA',
        'secondaryDark': '#F5F5F5',
        'background': '#FFFFFF',
        'backgroundSecondary': '#FFF3E0',
        'surface': '#FFFFFF',
        'text': '#212121',
        'textSecondary': '#757575',
        'textMuted': '#BDBDBD',
        'accent': '#FFB74D',
        'border': '#E0E0E0',
        'shadow': 'rgba(0, 0, 0, 0.1)',
    },
    'fonts': {
        'bold': '700',
        'semiBold': '600',
        'medium': '500',
        'regular': '400',
        'light': '300',
        'thin': '200',
    },
    'spacing': {
        'xs': '0.25rem',
        'sm': '0.5rem',
        'md': '1rem',
        'lg': '1.5rem',
        'xl': '2rem',
    },
    'borderRadius': {
        'sm': '0.25rem',
        'md': '0.5rem',
        'lg': '1rem',
    },
    'shadows': {
        'sm': '0 1px 3px rgba(0, 0, 0, 0.12)',
        'md': '0 4px 6px rgba(0, 0, 0, 0.1)',
        'lg': '0 10px 25px rgba(0, 0, 0, 0.15)',
    },
}
